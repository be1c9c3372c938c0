from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from django.core.exceptions import ValidationError
from django.db.models import Q

from apps.core.config import PipelineConfig, get_pipeline_config
from apps.core.errors import PipelineError, error_detail
from apps.fulfillment.models import CommerceStore, OrderFulfillmentRecord
from apps.fulfillment.providers.shopify import ShopifyClient, get_shopify_client
from apps.fulfillment.services.discounts import ensure_match_discount
from apps.fulfillment.services.orders import ensure_order_for_match
from apps.fulfillment.services.shipments import ensure_manual_shipment
from apps.fulfillment.services.stores import active_store_for_brand
from apps.marketplace.metadata import FULFILLMENT_MANUAL
from apps.marketplace.models import Offer
from apps.matches.models import Match

logger = logging.getLogger(__name__)

SUCCEEDED = "SUCCEEDED"
SKIPPED = "SKIPPED"
FAILED = "FAILED"

MAX_OFFER_PRODUCTS = 20

ClientFactory = Callable[[CommerceStore, PipelineConfig], ShopifyClient]


@dataclass(frozen=True)
class StepResult:
    name: str
    status: str
    detail: str = ""
    retryable: bool = False

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    def as_dict(self) -> dict:
        return {"name": self.name, "status": self.status, "detail": self.detail, "retryable": self.retryable}


@dataclass
class FulfillmentOutcome:
    match_id: int
    steps: List[StepResult] = field(default_factory=list)
    discount_created: bool = False
    order_created: bool = False
    manual_shipment: bool = False

    @property
    def ok(self) -> bool:
        return not any(step.failed for step in self.steps)

    @property
    def errors(self) -> list[str]:
        return [step.detail for step in self.steps if step.failed]

    def as_dict(self) -> dict:
        return {
            "match_id": self.match_id,
            "ok": self.ok,
            "discount_created": self.discount_created,
            "order_created": self.order_created,
            "manual_shipment": self.manual_shipment,
            "steps": [step.as_dict() for step in self.steps],
            "errors": self.errors,
        }


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, PipelineError):
        return exc.retryable
    return not isinstance(exc, ValidationError)


def _failed(name: str, exc: Exception) -> StepResult:
    return StepResult(name=name, status=FAILED, detail=error_detail(exc) or f"{name} failed", retryable=_is_retryable(exc))


class _LazyClient:
    """Builds the Shopify client on first use so token problems surface inside a step."""

    def __init__(self, store: CommerceStore | None, config: PipelineConfig, factory: ClientFactory) -> None:
        self.store = store
        self.config = config
        self.factory = factory
        self._client: ShopifyClient | None = None

    def get(self) -> ShopifyClient:
        if self._client is None:
            self._client = self.factory(self.store, self.config)
        return self._client


def _discount_step(match, store, products, clients: _LazyClient, config: PipelineConfig, outcome) -> StepResult:
    name = "discount"
    if store is None:
        return StepResult(name=name, status=SKIPPED, detail="No store connected")
    if match.offer.deliverable_type == Offer.DeliverableType.UGC_ONLY:
        return StepResult(name=name, status=SKIPPED, detail="UGC-only offer")
    try:
        discount, created = ensure_match_discount(match, store, products, client=clients.get(), config=config)
    except Exception as exc:  # noqa: BLE001
        return _failed(name, exc)
    outcome.discount_created = discount is not None
    if created:
        return StepResult(name=name, status=SUCCEEDED)
    return StepResult(name=name, status=SKIPPED, detail="Discount already exists")


def _order_step(match, store, products, clients: _LazyClient, outcome) -> StepResult:
    name = "order"
    if store is None:
        return StepResult(name=name, status=SKIPPED, detail="No store connected")
    if match.offer.parsed_metadata.is_manual_fulfillment:
        return StepResult(name=name, status=SKIPPED, detail="Offer uses manual fulfillment")
    if not products:
        return StepResult(name=name, status=SKIPPED, detail="Offer has no Shopify products selected")
    try:
        record = ensure_order_for_match(match, store=store, products=products, client=clients.get())
    except Exception as exc:  # noqa: BLE001
        return _failed(name, exc)
    outcome.order_created = record.status in (
        OrderFulfillmentRecord.Status.COMPLETED,
        OrderFulfillmentRecord.Status.FULFILLED,
    )
    return StepResult(name=name, status=SUCCEEDED, detail=record.status)


def _manual_shipment_step(match, needs_manual: bool, outcome) -> StepResult:
    name = "manual_shipment"
    if not needs_manual:
        return StepResult(name=name, status=SKIPPED, detail="Not required")
    try:
        _, created = ensure_manual_shipment(match)
    except Exception as exc:  # noqa: BLE001
        return _failed(name, exc)
    outcome.manual_shipment = True
    return StepResult(name=name, status=SUCCEEDED if created else SKIPPED)


def run_fulfillment_steps(
    match,
    *,
    config: PipelineConfig | None = None,
    client_factory: ClientFactory | None = None,
) -> FulfillmentOutcome:
    """Discount, seeding order and manual shipment for an accepted match.

    Used by approval and by the fulfillment cron. Each step is isolated: a
    failure is recorded on its StepResult and the remaining steps still run.
    """
    config = config or get_pipeline_config()
    offer = match.offer
    store = active_store_for_brand(offer.brand_id)
    products = list(offer.products.all()[:MAX_OFFER_PRODUCTS]) if store else []
    needs_manual = offer.deliverable_type != Offer.DeliverableType.UGC_ONLY and (
        offer.parsed_metadata.is_manual_fulfillment or store is None or not products
    )
    clients = _LazyClient(store, config, client_factory or get_shopify_client)

    outcome = FulfillmentOutcome(match_id=match.id)
    outcome.steps.append(_discount_step(match, store, products, clients, config, outcome))
    outcome.steps.append(_order_step(match, store, products, clients, outcome))
    outcome.steps.append(_manual_shipment_step(match, needs_manual, outcome))

    for step in outcome.steps:
        if step.failed:
            logger.warning(
                "fulfillment.step_failed match_id=%s step=%s retryable=%s detail=%s",
                match.id,
                step.name,
                step.retryable,
                step.detail,
            )
    return outcome


def pending_fulfillment_matches(limit: int):
    """Accepted matches with a connected store whose seeding order is absent or still retryable."""
    return (
        Match.objects.select_related("offer", "offer__brand", "creator")
        .filter(
            status=Match.Status.ACCEPTED,
            offer__brand__stores__isnull=False,
            offer__brand__stores__uninstalled_at__isnull=True,
            offer__products__isnull=False,
        )
        .filter(
            Q(order_record__isnull=True) | Q(order_record__status__in=OrderFulfillmentRecord.RETRYABLE_STATUSES)
        )
        .filter(
            Q(offer__metadata__fulfillmentType__isnull=True)
            | ~Q(offer__metadata__fulfillmentType=FULFILLMENT_MANUAL)
        )
        .distinct()
        .order_by("accepted_at", "id")[:limit]
    )


def run_pending_fulfillment(
    *,
    config: PipelineConfig | None = None,
    client_factory: ClientFactory | None = None,
    limit: int | None = None,
) -> dict:
    config = config or get_pipeline_config()
    results = []
    for match in pending_fulfillment_matches(limit or config.cron_batch_size):
        outcome = run_fulfillment_steps(match, config=config, client_factory=client_factory)
        results.append(outcome.as_dict())
    logger.info("fulfillment.cron_finished processed=%s", len(results))
    return {"ok": True, "processed": len(results), "results": results}
