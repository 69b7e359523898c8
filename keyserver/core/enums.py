from enum import Enum

class KeyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"   # toggled off by an admin
    BLOCKED = "blocked"     # set for every key of a blocked user
