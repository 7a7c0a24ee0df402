from marshmallow import Schema, fields, validates, ValidationError
from typing import Optional

ITEM_FIELDS = {"id", "name", "price", "tags"}


class ItemQuerySchema(Schema):
    select = fields.String(load_default=None, data_key="fields")

    @validates("select")
    def _validate_select(self, value: Optional[str], **kwargs):
        if not value:
            return
        unknown = {name.strip() for name in value.split(",")} - ITEM_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown field(s) {', '.join(sorted(unknown))}. Allowed: {', '.join(sorted(ITEM_FIELDS))}"
            )
