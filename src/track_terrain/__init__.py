"""Activity tracks to densified 3D terrain."""

__version__ = "0.1.0"
