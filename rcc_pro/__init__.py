"""RCC Pro: Refrigeration Compressor Cycle calculator."""

__app_name__ = "RCC Pro"
__version__ = "0.4.0"
