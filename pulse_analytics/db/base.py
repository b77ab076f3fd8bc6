# pulse_analytics/db/base.py
from pulse_analytics.db.base_class import Base  # noqa: F401

# Import every model module so Base.metadata knows all the tables
# (used by Alembic autogenerate and by the test fixtures).
from pulse_analytics.models import tenant  # noqa: F401
from pulse_analytics.models import question  # noqa: F401
from pulse_analytics.models import survey  # noqa: F401
from pulse_analytics.models import answer  # noqa: F401
from pulse_analytics.models import tracker  # noqa: F401
