"""
Accelerator - Pointer acceleration for evdev mice

Grabs a pointing device, scales its relative motion along a speed-dependent
sensitivity curve and re-emits it through a uinput clone. A small launcher
starts it per device from udev/systemd.
"""

__version__ = "0.1.0"
