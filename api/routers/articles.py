"""
Article inventory router.

Wired to:
- build_inventory for the data management table
"""

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from api.engine.inventory import build_inventory
from api.models.articles import Article
from api.models.enums import InventorySortKey, SortDirection
from api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class InventoryRequest(BaseModel):
    """Articles to list and the sort to apply."""

    model_config = ConfigDict(populate_by_name=True)

    articles: list[Article] = Field(default_factory=list)
    sort_key: InventorySortKey = Field(
        default=InventorySortKey.PUBLICATION_DATE, alias="sortKey"
    )
    direction: SortDirection = SortDirection.DESCENDING


@router.post("/inventory")
async def article_inventory(request: InventoryRequest):
    """Latest values and lifetime social totals per article, sorted."""
    rows = build_inventory(request.articles, request.sort_key, request.direction)

    logger.info(
        "inventory_request",
        articles=len(rows),
        sort_key=request.sort_key.value,
        direction=request.direction.value,
    )
    return {
        "success": True,
        "data": {
            "articles": [row.model_dump(mode="json") for row in rows],
            "count": len(rows),
        },
    }
