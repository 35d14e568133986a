"""Streamlit entry point for the Quotation Tracker.

``streamlit run main.py`` (or ``quotation-tracker`` once installed) makes sure
the database schema exists and then renders the selected page.
"""
from __future__ import annotations

import tracker_app


def main() -> None:
    tracker_app.init_db()
    tracker_app.main()


if __name__ == "__main__":
    main()
