"""Quote similarity matching and pricing recommendation engine"""

__version__ = "2.0.0"
