# portfolio/db/enums.py
import enum


# Project related enums
class ProjectStatus(enum.Enum):
    Possible = "Possible"
    Scoping = "Scoping"
    Procurement = "Procurement"
    Execution = "Execution"
    Completed = "Completed"
    Closed = "Closed"


class CapexOpex(enum.Enum):
    CAPEX = "CAPEX"
    OPEX = "OPEX"


# User related enums
class UserRole(enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    PMO = "PMO"


# ProjectLog related enums
class ProjectLogAction(enum.Enum):
    STATUS_CHANGE = "STATUS_CHANGE"
    SUBSTATUS_CHANGE = "SUBSTATUS_CHANGE"
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    NOTE_ADDED = "NOTE_ADDED"


class ChangeValueKind(enum.Enum):
    scalar = "scalar"
    date = "date"
    unknown = "unknown"
