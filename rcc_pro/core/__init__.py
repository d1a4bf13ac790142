"""Core modules for RCC Pro.

- fluids: CoolProp-based property provider and refrigerant catalogue
- errors: calculation error taxonomy
- compressors: compressor model catalogue
- config: configuration and result persistence (JSON)
"""
