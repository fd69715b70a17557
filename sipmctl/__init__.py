"""Control of a SiPM bias power supply through a LinkUSB 1-wire adapter."""

__version__ = "0.1.0"