from dataclasses import dataclass
from typing import Optional


@dataclass
class Part:
    id: int
    name: str  # human readable, e.g., "Front Left Headlight"
    part_number: Optional[str] = None  # manufacturer part number, e.g., "8K0941003"

    def to_dict(self) -> dict:
        """Convert part to dictionary for display or export."""
        return {
            "id": self.id,
            "name": self.name,
            "part_number": self.part_number,
        }
