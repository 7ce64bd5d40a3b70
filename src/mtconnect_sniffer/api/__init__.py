"""
API module for the MTConnect Sniffer
"""

from .main_api import SnifferAPI

__all__ = ['SnifferAPI']
