"""Add-on selection and order pricing."""

from src.gm_catalog.domain.models import AddOn, Service
from src.gm_common.errors import AddOnNotFoundError, InvalidAddOnSelectionError


def select_add_ons(
    service: Service, add_on_ids: list[str], known_ids: set[str]
) -> list[AddOn]:
    """Resolve requested add-on ids against the service's own add-ons.

    Args:
        service: The ordered service, with its add-ons loaded.
        add_on_ids: Ids the buyer asked for, in request order.
        known_ids: Which of add_on_ids exist at all (any service).

    Raises:
        InvalidAddOnSelectionError: duplicate id, or an add-on of another service.
        AddOnNotFoundError: an id that matches no add-on anywhere.
    """
    if len(set(add_on_ids)) != len(add_on_ids):
        raise InvalidAddOnSelectionError("duplicate add-on ids")

    missing = [aid for aid in add_on_ids if aid not in known_ids]
    if missing:
        raise AddOnNotFoundError(", ".join(missing))

    own = {a.id: a for a in service.add_ons}
    foreign = [aid for aid in add_on_ids if aid not in own]
    if foreign:
        raise InvalidAddOnSelectionError(
            f"{', '.join(foreign)} not offered by service {service.id}"
        )
    return [own[aid] for aid in add_on_ids]


def order_price(service: Service, add_ons: list[AddOn]) -> int:
    return service.price + sum(a.price for a in add_ons)
