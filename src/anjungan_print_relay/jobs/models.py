"""
Result and printer models. Plain data classes, no persistence.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class PrinterDescriptor:
    name: str
    device_id: str = ''
    paper_sizes: List[str] = field(default_factory=list)

    @classmethod
    def from_cim(cls, entry: dict) -> Optional['PrinterDescriptor']:
        """Build from one Win32_Printer object as emitted by ConvertTo-Json."""
        if not isinstance(entry, dict):
            return None
        name = entry.get('Name') or entry.get('DeviceID') or ''
        device_id = entry.get('DeviceID') or entry.get('Name') or ''
        if not name and not device_id:
            return None
        papers = entry.get('PrinterPaperNames')
        return cls(
            name=str(name),
            device_id=str(device_id),
            paper_sizes=[str(p) for p in papers] if isinstance(papers, list) else [],
        )

    @property
    def display_name(self) -> str:
        return self.name or self.device_id


def display_names(printers: List[Any]) -> List[str]:
    """Collapse descriptors or bare strings into a list of non-empty names."""
    names = []
    for printer in printers:
        if isinstance(printer, str):
            name = printer
        elif isinstance(printer, PrinterDescriptor):
            name = printer.display_name
        else:
            continue
        if name:
            names.append(name)
    return names


@dataclass
class PrintResult:
    kind: str                   # raw | label | pdf | html
    target: str                 # share path or printer name
    size: int = 0               # bytes submitted
    height_px: Optional[int] = None

    @property
    def message(self) -> str:
        if self.kind == 'html':
            return f"Sent HTML as PDF to {self.target}"
        return f"Sent {self.kind.upper()} to {self.target}"

    def __str__(self):
        return f"PrintResult(kind={self.kind} target={self.target} size={self.size})"
