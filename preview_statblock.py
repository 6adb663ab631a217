"""
Quick preview of a balanced statblock. Run with:

    python preview_statblock.py [fixture_name] [columns]

fixture_name defaults to 'goblin_shaman' (any *.json monster under
tests/fixtures/monsters). columns is the container column count (default 2).
"""
import json
import os
import sys

# Add lib to path so imports work without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "lib"))

from PyQt5.QtWidgets import QApplication, QMainWindow, QSizePolicy
from statblock.config import configure_logging, load_settings
from ui.statblock_widget import StatblockWidget

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "tests", "fixtures", "monsters")


def preview_widget(fixture: str, columns: int) -> QMainWindow:
    fixture_path = os.path.join(FIXTURES_DIR, f"{fixture}.json")
    if not os.path.exists(fixture_path):
        print(f"Fixture not found: {fixture_path}")
        print("Available:", [f[:-5] for f in os.listdir(FIXTURES_DIR) if f.endswith(".json")])
        sys.exit(1)

    with open(fixture_path) as f:
        record = json.load(f)

    window = QMainWindow()
    window.setWindowTitle(f"Statblock Preview — {record.get('name', fixture)}")
    window.resize(900, 750)

    widget = StatblockWidget()
    widget.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)
    widget.load_statblock(record, columns=columns)
    window.setCentralWidget(widget)
    window.show()
    return window


def main():
    args = sys.argv[1:]
    fixture = args[0] if args else "goblin_shaman"
    columns = int(args[1]) if len(args) > 1 else 2

    settings = load_settings()
    configure_logging(settings.log_level)

    app = QApplication(sys.argv)
    window = preview_widget(fixture, columns)  # keep reference alive for event loop
    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
