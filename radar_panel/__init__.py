"""RAY Radar control panel: installs, runs and monitors a single Windows workload under wine."""

__version__ = "1.0.0"
