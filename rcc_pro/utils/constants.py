"""Physical constants and reference values used throughout RCC Pro.

All values in SI units unless otherwise noted.
"""

# Universal constants
R_UNIVERSAL = 8.31446261815324  # J/(mol·K), universal gas constant

# Thermodynamic
T_CELSIUS_OFFSET = 273.15  # K
CP_WATER = 4186.0  # J/(kg·K), heat-sink water, constant

# Fluids
AMMONIA = "R717"
AMMONIA_ALIASES = frozenset({"r717", "ammonia", "nh3"})

# Numerical
DUTY_TOLERANCE = 1.0e-3  # relative cascade duty imbalance
