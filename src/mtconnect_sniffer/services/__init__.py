"""
Long running services for the MTConnect Sniffer
"""

from .sniffer_server import SnifferServer

__all__ = ['SnifferServer']
