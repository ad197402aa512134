"""keybridge -- keyboard-to-serial bridge.

Relays everything a serial-attached device prints to the local terminal
while forwarding every local key press and release to the device as a
compact 3-byte frame. The terminal is held in raw mode for the duration
of the session so forwarded keystrokes are not echoed locally.
"""

__version__ = "0.1.0"
