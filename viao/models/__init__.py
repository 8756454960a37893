# Models package — import all models here so Alembic can discover them.

from viao.models.user import User  # noqa: F401
from viao.models.event import Event  # noqa: F401
from viao.models.boost import BoostCheckout, BoostReceipt  # noqa: F401
from viao.models.notification import Notification  # noqa: F401
from viao.models.audit import AuditEvent  # noqa: F401
from viao.models.stripe_event import StripeEvent  # noqa: F401
