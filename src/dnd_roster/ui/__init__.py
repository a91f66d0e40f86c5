"""Streamlit front end for the character roster.

Submodules:
    app: Landing page
    state: Shared client, rulebook and flash messages
    theme: Styling and sheet widgets
    pages: Characters, Level Up, Companions and Generate

Usage:
    Run the application with:
        streamlit run src/dnd_roster/ui/app.py

    Or import and run programmatically:
        from dnd_roster.ui import run_app
        run_app()
"""

from __future__ import annotations


def run_app() -> None:
    """Run the Streamlit application.

    Launches a subprocess running streamlit on the landing page.
    """
    import subprocess
    import sys
    from pathlib import Path

    app_path = Path(__file__).parent / "app.py"
    subprocess.run([sys.executable, "-m", "streamlit", "run", str(app_path)], check=False)


__all__ = [
    "run_app",
]
