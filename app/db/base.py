# Import every model so relationship() targets and Base.metadata are complete.
from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.group import Group  # noqa: F401
from app.models.group_member import GroupMember  # noqa: F401
from app.models.expense import Expense  # noqa: F401
from app.models.expense_split import ExpenseSplit  # noqa: F401
from app.models.payment import Payment  # noqa: F401
