"""
Terminal UI (TUI) for the button board.

Available TUIs:
- simulated panel: python -m buttonboard.tui.panel_tui
"""

__all__ = ["main"]


def main():
    """Launch the simulated panel (requires textual)."""
    from buttonboard.tui.panel_tui import main as _main
    _main()
