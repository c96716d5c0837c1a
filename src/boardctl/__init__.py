"""
Board power control (boardctl).

Switches lab test boards through USB power hubs and relay boards, and
verifies boot and shutdown over the board's serial console.
"""

__version__ = "0.1.0"
