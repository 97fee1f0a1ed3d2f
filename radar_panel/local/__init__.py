"""
Local package for the RAY Radar control panel.

This package holds the workload control core: configuration, the artifact on
disk, the workload process, the captured log and restart orchestration.
"""
