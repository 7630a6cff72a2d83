"""Digest queue items — a two-variant sum type discriminated on ``kind``."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from inturank.models.activity import FormattedActivity, TransactionReceipt


class ReceiptDigestItem(BaseModel):
    """The owner's own trade, held for the next digest."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["receipt"] = "receipt"
    receipt: TransactionReceipt


class ActivityDigestItem(BaseModel):
    """Someone else's trade on a held or followed market."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["activity"] = "activity"
    activity: FormattedActivity


DigestItem = Annotated[
    Union[ReceiptDigestItem, ActivityDigestItem],
    Field(discriminator="kind"),
]

DIGEST_ITEM_ADAPTER: TypeAdapter[DigestItem] = TypeAdapter(DigestItem)
