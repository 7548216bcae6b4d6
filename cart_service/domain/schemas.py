# cart_service/domain/schemas.py
from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# identities and quantities stay loosely typed here, CartService coerces them
# so that a bad value is a 400 with a domain message and not a 422
Identity = Optional[Union[int, str]]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddToCartIn(_CamelModel):
    """Body of POST /cart."""

    user_identity: Optional[str] = None
    user_context_id: Optional[str] = None
    product_identity: Identity = None
    quantity: Optional[Any] = None


class QuantityUpdateIn(BaseModel):
    """Body of PATCH /cart/{productIdentity}."""

    user_email: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("userEmail", "userIdentity", "user_email"),
    )
    quantity: Optional[Any] = None


class CartLineOut(_CamelModel):
    id: str
    user_identity: str
    user_context_id: Optional[str] = None
    product_identity: str
    quantity: int
    created_at: datetime
    updated_at: datetime
    product_snapshot: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class RemoveOut(_CamelModel):
    message: str
    deleted_count: int
