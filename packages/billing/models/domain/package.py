"""Domain model for catalog packages."""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import BillingRole


class Package(BaseModel):
    """Immutable catalog entry: a priced bundle of limits for one payer role."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    role: BillingRole
    id: str
    name: str
    price: float
    currency: str = "usd"
    billing_interval: str = "month"
    stripe_product_id: str
    stripe_price_id: str
    limits: Dict[str, int]
    features: List[str] = Field(default_factory=list)
    popular: bool = False

    @property
    def price_cents(self) -> int:
        return int(round(self.price * 100))
