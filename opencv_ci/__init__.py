"""OpenCV CI dependency installer dispatcher.

Core design goals:
- One decision per run: host family + build variant -> one installer
- Environment captured once, passed explicitly
- Installers are fatal on failure; disk reclaim is best-effort
- Centralized logging
"""

__all__ = []
