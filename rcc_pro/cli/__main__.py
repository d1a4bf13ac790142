from rcc_pro.cli.main import main

main()
