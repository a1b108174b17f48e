from typing import Any, Dict, Hashable, Mapping, NamedTuple, Optional, get_type_hints


# reserved identifiers
WILDCARD = '*'
ERROR = 'error'


class WildcardEvent(NamedTuple):
    """What a wildcard listener receives: the emitted category and its payload.

    The payload is the same object the emitter passed, never a copy.
    """
    category: Hashable
    payload: Any = None


def contract_categories(contract: Optional[Any]) -> Optional[Dict[Hashable, Any]]:
    """Resolve a category->payload-type contract into a plain dict.

    `contract` is either a Mapping or a class with annotations (normally a
    TypedDict). The 'error' category is always present and maps to
    Exception. Returns None when no contract is given.
    """
    if contract is None:
        return None
    if isinstance(contract, Mapping):
        categories = dict(contract)
    else:
        categories = dict(get_type_hints(contract))
    if WILDCARD in categories:
        raise ValueError("'*' is reserved for wildcard subscriptions and cannot appear in a contract")
    categories.setdefault(ERROR, Exception)
    return categories
