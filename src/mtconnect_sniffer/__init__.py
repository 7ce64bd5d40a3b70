"""
MTConnect Sniffer - finds MTConnect agents on local networks
"""

__version__ = "1.0.0"
