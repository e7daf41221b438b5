# Models package init
"""
Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and by the test suite's create_all).
"""

from trame.models.user import User, UserSession  # noqa: F401
from trame.models.document import Block, Document  # noqa: F401
