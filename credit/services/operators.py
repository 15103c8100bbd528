# credit/services/operators.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from credit.services.exceptions import IdentityResolutionError


def resolve_operator_name(operator_id) -> str:
    """
    Turn the id of the staff member taking a payment into the display name
    stored on the payment row.

    Runs inside its own savepoint: a failed lookup is rolled back on its own
    and leaves the caller's transaction usable.
    """
    if not operator_id:
        raise IdentityResolutionError("No operator id supplied")

    User = get_user_model()

    try:
        with transaction.atomic():
            user = User.objects.get(pk=operator_id)
    except User.DoesNotExist as exc:
        raise IdentityResolutionError(f"Operator {operator_id} not found") from exc
    except (ValueError, ValidationError) as exc:
        raise IdentityResolutionError(f"Invalid operator id: {operator_id}") from exc
    except DatabaseError as exc:
        raise IdentityResolutionError(f"Operator lookup failed for {operator_id}") from exc

    name = (user.get_display_name() or "").strip()
    if not name:
        raise IdentityResolutionError(f"Operator {operator_id} has no display name")
    return name
