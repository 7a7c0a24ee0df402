from typing import Optional

from flask_smorest import Blueprint, abort

from jsonpad.extensions.logging import get_logger
from jsonpad.routes.schemas.items import ItemQuerySchema

blp = Blueprint(
    "Items",
    __name__,
    url_prefix="/items",
    description="Read-only item catalogue",
)

logger = get_logger(__name__, module_name="Items")

CATALOGUE = {
    "1": {"id": "1", "name": "Notebook", "price": 4.5, "tags": ["paper"]},
    "2": {"id": "2", "name": "Fountain pen", "price": 32.0, "tags": ["ink", "gift"]},
    "3": {"id": "3", "name": "Ink bottle", "price": 9.9, "tags": ["ink"]},
}


def _select_fields(item: dict, select: Optional[str]) -> dict:
    if not select:
        return dict(item)
    wanted = [name.strip() for name in select.split(",")]
    return {key: value for key, value in item.items() if key in wanted}


@blp.route("/<string:item_id>", methods=["GET"], strict_slashes=False)
@blp.arguments(ItemQuerySchema, location="query", as_kwargs=True)
def get_item(item_id: str, **query_kwargs):
    item = CATALOGUE.get(item_id)
    if item is None:
        logger.info(f"Item {item_id} not found")
        abort(404, message=f"Item '{item_id}' not found")

    return _select_fields(item, query_kwargs.get("select"))
