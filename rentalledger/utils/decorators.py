from functools import wraps

from rentalledger.exceptions import AuthenticationError
from rentalledger.utils.constants import SessionKind
from rentalledger.utils.sessions import load_context


def context_required(kind):
    """Inject the signed-in ``ctx`` for ``kind`` or answer 401."""
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            ctx = load_context(kind)
            if ctx is None:
                raise AuthenticationError(f"Error: please sign in to the {kind} account first")
            return fn(*args, ctx=ctx, **kwargs)

        return wrapper

    return deco


customer_required = context_required(SessionKind.CUSTOMER)
admin_required = context_required(SessionKind.ADMIN)
