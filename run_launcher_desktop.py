"""
Standalone entry point that *always* launches a native window.
Run via:  python run_launcher_desktop.py
"""

from nyx_launcher.main import run_desktop

# Port 5060: the Nyx server itself owns 3000
run_desktop(host="127.0.0.1", port=5060)
