"""
Discovery module for MTConnect device discovery
"""

from .sniffer import Sniffer, SweepInProgressError
from .models import MTConnectDevice, ProbeContext, RunState, SweepResult
from .tracker import CompletionTracker
from .protocol_client import MTConnectClient

__all__ = ['Sniffer', 'SweepInProgressError', 'MTConnectDevice', 'ProbeContext', 'RunState',
           'SweepResult', 'CompletionTracker', 'MTConnectClient']
