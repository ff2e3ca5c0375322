from __future__ import annotations

import csv
import json
import logging
import sys
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from PySide6 import QtCore, QtWidgets

from .config import Settings, load_settings
from .context import Diagnostic, PropertyRepository
from .errors import SmartctlExecutionError, SmartctlParserError
from .smartctl import has_smartctl, run_smartctl_text, scan_devices
from .text_parser import SmartctlTextAtaParser

logger = logging.getLogger(__name__)


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, settings: Optional[Settings] = None) -> None:
        super().__init__()
        self.settings = settings or load_settings()
        self.setWindowTitle("smartctl Property Viewer")
        self.resize(960, 540)

        self.status_label = QtWidgets.QLabel("")
        self.scan_button = QtWidgets.QPushButton("Scan")
        self.scan_button.clicked.connect(self.scan)
        self.export_json_button = QtWidgets.QPushButton("Export JSON")
        self.export_json_button.clicked.connect(self.export_json)
        self.export_csv_button = QtWidgets.QPushButton("Export CSV")
        self.export_csv_button.clicked.connect(self.export_csv)
        self._last_report: List[Dict[str, Any]] = []

        header = QtWidgets.QHBoxLayout()
        header.addWidget(self.scan_button)
        header.addWidget(self.export_json_button)
        header.addWidget(self.export_csv_button)
        header.addStretch(1)
        header.addWidget(self.status_label)

        self.tree = QtWidgets.QTreeWidget()
        self.tree.setColumnCount(5)
        self.tree.setHeaderLabels(["Device/Property", "Value", "Reported Name", "Generic Name", "Notes"])
        self.tree.setAlternatingRowColors(True)

        root = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(root)
        layout.addLayout(header)
        layout.addWidget(self.tree)
        self.setCentralWidget(root)

        self._set_status("Ready")

    def _set_status(self, text: str) -> None:
        self.status_label.setText(text)

    def scan(self) -> None:
        self.tree.clear()
        if not has_smartctl(self.settings):
            self._set_status("smartctl not found in PATH")
            return
        self._set_status("Scanning...")

        try:
            devices = scan_devices(self.settings)
        except SmartctlExecutionError as exc:
            self._set_status(f"Device scan failed: {exc}")
            return

        report = []
        for device, dev_type in devices:
            properties, diagnostics, error = self._parse_device(device, dev_type)
            notes = error or _fmt_diagnostics(diagnostics)
            item = QtWidgets.QTreeWidgetItem([device, dev_type, "", "", notes])
            _apply_status_color(item, error, diagnostics)
            self.tree.addTopLevelItem(item)
            if properties is not None:
                _add_property_items(item, properties)
            report.append(_device_report(device, dev_type, properties, diagnostics, error))

        self.tree.expandToDepth(0)
        self._last_report = report
        self._set_status(f"Done, {len(devices)} device(s)")

    def _parse_device(self, device: str, dev_type: str):
        parser = SmartctlTextAtaParser()
        try:
            output = run_smartctl_text(device, dev_type, self.settings)
            parser.parse(output)
        except (SmartctlExecutionError, SmartctlParserError) as exc:
            logger.warning("Cannot read %s: %s", device, exc)
            # keep what was gathered before the failure
            return parser.properties, parser.diagnostics, str(exc)
        return parser.properties, parser.diagnostics, None

    def export_json(self) -> None:
        if not self._last_report:
            self._set_status("Nothing to export. Run Scan first.")
            return
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export JSON", "smart_properties.json", "JSON Files (*.json)"
        )
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self._last_report, f, ensure_ascii=False, indent=2)
            self._set_status(f"Exported: {path}")
        except OSError as exc:
            self._set_status(f"Export failed: {exc}")

    def export_csv(self) -> None:
        if not self._last_report:
            self._set_status("Nothing to export. Run Scan first.")
            return
        path, _ = QtWidgets.QFileDialog.getSaveFileName(
            self, "Export CSV", "smart_properties.csv", "CSV Files (*.csv)"
        )
        if not path:
            return
        try:
            with open(path, "w", newline="", encoding="utf-8") as f:
                write_csv_report(f, self._last_report)
            self._set_status(f"Exported: {path}")
        except OSError as exc:
            self._set_status(f"Export failed: {exc}")


CSV_COLUMNS = [
    "device",
    "type",
    "section",
    "generic_name",
    "display_name",
    "reported_name",
    "reported_value",
    "readable_value",
    "value_kind",
]


def write_csv_report(f, report: List[Dict[str, Any]]) -> None:
    writer = csv.writer(f)
    writer.writerow(CSV_COLUMNS)
    for d in report:
        for p in d.get("properties", []):
            if not p.get("visible", True):
                continue
            writer.writerow(
                [
                    d.get("device"),
                    d.get("type"),
                    p.get("section"),
                    p.get("generic_name"),
                    p.get("display_name"),
                    p.get("reported_name"),
                    p.get("reported_value"),
                    p.get("readable_value"),
                    p.get("value_kind"),
                ]
            )


def _device_report(
    device: str,
    dev_type: str,
    properties: Optional[PropertyRepository],
    diagnostics: List[Diagnostic],
    error: Optional[str],
) -> Dict[str, Any]:
    return {
        "device": device,
        "type": dev_type,
        "error": error,
        "properties": properties.to_dicts() if properties is not None else [],
        "diagnostics": [asdict(d) for d in diagnostics],
    }


def _add_property_items(parent: QtWidgets.QTreeWidgetItem, properties: PropertyRepository) -> None:
    sections: Dict[str, QtWidgets.QTreeWidgetItem] = {}
    for p in properties:
        if not p.visible:
            continue
        key = p.section.value
        section_item = sections.get(key)
        if section_item is None:
            section_item = QtWidgets.QTreeWidgetItem([_fmt_section(key), "", "", "", ""])
            parent.addChild(section_item)
            sections[key] = section_item
        section_item.addChild(
            QtWidgets.QTreeWidgetItem(
                [p.display_name, _fmt_value(p.format_value()), p.reported_name, p.generic_name, ""]
            )
        )


def _apply_status_color(item: QtWidgets.QTreeWidgetItem, error: Optional[str],
                        diagnostics: List[Diagnostic]) -> None:
    if error:
        color = QtCore.Qt.GlobalColor.red
    elif any(d.level == "ERROR" for d in diagnostics):
        color = QtCore.Qt.GlobalColor.darkYellow
    else:
        color = QtCore.Qt.GlobalColor.darkGreen

    for i in range(item.columnCount()):
        item.setForeground(i, color)


def _fmt_section(value: str) -> str:
    return value.replace("_", " ").title()


def _fmt_value(value: str) -> str:
    # multi-line subsection dumps
    first, _, rest = value.partition("\n")
    return f"{first} ..." if rest else first


def _fmt_diagnostics(diagnostics: List[Diagnostic]) -> str:
    if not diagnostics:
        return "No issues"
    return f"{len(diagnostics)} parser note(s)"


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QtWidgets.QApplication(sys.argv)
    win = MainWindow(settings)
    win.show()
    sys.exit(app.exec())
