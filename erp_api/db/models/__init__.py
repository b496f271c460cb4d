"""
ORM models for tenancy, security, catalog, partners, treasury, inventory,
operations and billing.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .tenancy import Tenant  # noqa: F401
from .security import (  # noqa: F401
    User,
    Role,
    UserRole,
)
from .catalog import (  # noqa: F401
    PreparationZone,
    ProductFamily,
    PaymentMethod,
    PriceList,
)
from .partners import (  # noqa: F401
    Supplier,
    SalesAgent,
)
from .hr import Shift  # noqa: F401
from .treasury import BankMovement  # noqa: F401
from .inventory import StockMovement  # noqa: F401
from .operations import WorkOrder  # noqa: F401
from .billing import Invoice  # noqa: F401
