# Overview: Currency rates (units per GBP); manual maintenance and provider sync over httpx.

from __future__ import annotations

import httpx
from flask import current_app

from ..extensions import db
from ..errors import NotFound, StorageError
from ..models import CurrencyRate
from ..validation import ConflictError, ValidationError, coerce_float, enforce_rules_currency
from posbackend.time_utils import utcnow


BASE_CURRENCY = "GBP"
UPDATED_BY_MANUAL = "manual"
UPDATED_BY_SYNC = "api_sync"


def list_rates() -> list[CurrencyRate]:
    return (
        db.session.query(CurrencyRate)
        .order_by(CurrencyRate.is_pinned.desc(), CurrencyRate.currency_code.asc())
        .all()
    )


def get_rate(code: str) -> CurrencyRate:
    rate = (
        db.session.query(CurrencyRate)
        .filter(CurrencyRate.currency_code == (code or "").strip().upper())
        .first()
    )
    if rate is None:
        raise NotFound("Currency rate not found")
    return rate


def create_rate(currency_code: str, rate_to_gbp: float, is_pinned: bool = False) -> CurrencyRate:
    patch = {"currency_code": currency_code, "rate_to_gbp": rate_to_gbp}
    enforce_rules_currency(patch)

    if db.session.query(CurrencyRate).filter_by(currency_code=patch["currency_code"]).first():
        raise ConflictError("Currency rate already exists")

    rate = CurrencyRate(
        currency_code=patch["currency_code"],
        rate_to_gbp=patch["rate_to_gbp"],
        is_pinned=bool(is_pinned),
        last_updated=utcnow(),
        updated_by=UPDATED_BY_MANUAL,
    )
    db.session.add(rate)
    db.session.commit()
    return rate


def update_rate(code: str, rate_to_gbp: float, is_pinned: bool | None = None) -> CurrencyRate:
    enforce_rules_currency({"rate_to_gbp": rate_to_gbp})
    rate = get_rate(code)
    rate.rate_to_gbp = rate_to_gbp
    if is_pinned is not None:
        rate.is_pinned = bool(is_pinned)
    rate.last_updated = utcnow()
    rate.updated_by = UPDATED_BY_MANUAL
    db.session.commit()
    return rate


def set_pinned(code: str, is_pinned: bool) -> CurrencyRate:
    """Pinning is a manual decision, so it also marks the row as manual."""
    rate = get_rate(code)
    rate.is_pinned = bool(is_pinned)
    rate.updated_by = UPDATED_BY_MANUAL
    db.session.commit()
    return rate


def delete_rate(code: str) -> None:
    rate = get_rate(code)
    db.session.delete(rate)
    db.session.commit()


def fetch_provider_rates(client: httpx.Client | None = None) -> dict:
    """GET the provider document ({base, date, rates}); StorageError on any failure."""
    url = current_app.config["CURRENCY_API_URL"]
    timeout = current_app.config.get("CURRENCY_API_TIMEOUT", 10.0)

    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=timeout)
    try:
        response = client.get(url)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise StorageError(
            f"Rate provider returned status {exc.response.status_code}",
            details={"provider_status": exc.response.status_code},
        ) from exc
    except httpx.HTTPError as exc:
        raise StorageError(f"Failed to fetch rates: {exc}") from exc
    except ValueError as exc:
        raise StorageError("Failed to parse rate provider response") from exc
    finally:
        if owns_client:
            client.close()

    if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
        raise StorageError("Rate provider response has no rates")
    return payload


def sync_rates(client: httpx.Client | None = None) -> dict:
    """
    Refresh every rate from the provider.

    - GBP is always 1.0; it stays pinned unless someone unpinned it by hand.
    - Other currencies keep their pin only when it was set manually.
    - Non-positive and malformed rates are skipped.
    """
    payload = fetch_provider_rates(client)
    now = utcnow()
    updated_count = 0

    existing = {rate.currency_code: rate for rate in db.session.query(CurrencyRate).all()}

    gbp = existing.get(BASE_CURRENCY)
    if gbp is None:
        db.session.add(CurrencyRate(
            currency_code=BASE_CURRENCY,
            rate_to_gbp=1.0,
            is_pinned=True,
            last_updated=now,
            updated_by=UPDATED_BY_SYNC,
        ))
    else:
        if gbp.updated_by != UPDATED_BY_MANUAL:
            gbp.is_pinned = True
        gbp.rate_to_gbp = 1.0
        gbp.last_updated = now
        gbp.updated_by = UPDATED_BY_SYNC
    updated_count += 1

    for code, value in payload["rates"].items():
        code = str(code).upper()
        if code == BASE_CURRENCY or len(code) != 3:
            continue
        try:
            value = float(value)
        except (TypeError, ValueError):
            current_app.logger.warning("Skipping malformed rate for %s: %r", code, value)
            continue
        if value <= 0:
            continue

        rate = existing.get(code)
        if rate is None:
            db.session.add(CurrencyRate(
                currency_code=code,
                rate_to_gbp=value,
                is_pinned=False,
                last_updated=now,
                updated_by=UPDATED_BY_SYNC,
            ))
        else:
            keep_pin = rate.updated_by == UPDATED_BY_MANUAL and rate.is_pinned
            rate.rate_to_gbp = value
            rate.last_updated = now
            rate.updated_by = UPDATED_BY_SYNC
            rate.is_pinned = keep_pin
        updated_count += 1

    db.session.commit()
    current_app.logger.info("Synced %d currency rates", updated_count)
    return {
        "message": "Currency rates synced successfully",
        "updated_count": updated_count,
        "sync_date": now,
    }


def parse_rate_payload(payload: dict, *, creating: bool) -> dict:
    """Validate a create/update body into {currency_code?, rate_to_gbp, is_pinned?}."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    required = ("currency_code", "rate_to_gbp") if creating else ("rate_to_gbp",)
    missing = [f for f in required if payload.get(f) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    data = {"rate_to_gbp": coerce_float(payload["rate_to_gbp"], "rate_to_gbp")}
    if creating:
        data["currency_code"] = str(payload["currency_code"]).strip()
    if payload.get("is_pinned") is not None:
        data["is_pinned"] = bool(payload["is_pinned"])
    return data
