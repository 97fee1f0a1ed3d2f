"""
The workload package.
Finds, launches, stops and reports on the managed Windows executable.
"""
from .controller import StopResult, WorkloadController
from .process_utils import ProcessLauncher, ProcessProbe, WorkloadState

__all__ = ['ProcessLauncher', 'ProcessProbe', 'StopResult', 'WorkloadController', 'WorkloadState']
