"""edgectl - bootstrap k3s onto edge devices."""

__version__ = "0.1.0"
