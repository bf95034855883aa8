from __future__ import annotations

from .models import Item


CATALOG: tuple[Item, ...] = (
    Item(1, "Virat Kohli"),
    Item(2, "Rohit Sharma"),
    Item(3, "MS Dhoni"),
    Item(4, "Sachin Tendulkar"),
    Item(5, "Sourav Ganguly"),
    Item(6, "Anil Kumble"),
    Item(7, "Kapil Dev"),
    Item(8, "Rahul Dravid"),
    Item(9, "VVS Laxman"),
    Item(10, "Yuvraj Singh"),
    Item(11, "Hardik Pandya"),
    Item(12, "Jasprit Bumrah"),
    Item(13, "Ravindra Jadeja"),
    Item(14, "Bhuvneshwar Kumar"),
    Item(15, "Shikhar Dhawan"),
    Item(16, "KL Rahul"),
    Item(17, "Shreyas Iyer"),
    Item(18, "Rishabh Pant"),
    Item(19, "Mohammed Shami"),
    Item(20, "Ishant Sharma"),
)


def fresh_pool() -> list[Item]:
    """A room's private copy of the catalog, in catalog order."""
    return list(CATALOG)


def find_item(pool: list[Item], item_id: int) -> Item | None:
    for item in pool:
        if item.id == item_id:
            return item
    return None
