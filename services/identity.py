# services/identity.py - Operator identity for audit entries
#
# No authentication: the author of admin comments is the operator name from
# settings, or "Admin" when unset.

DEFAULT_OPERATOR = "Admin"


def get_current_user_id(store=None) -> str:
    """Operator name from settings, or "Admin" if unavailable."""
    if store is None:
        return DEFAULT_OPERATOR
    name = store.get_setting("operator_name", "")
    return (name or "").strip() or DEFAULT_OPERATOR
