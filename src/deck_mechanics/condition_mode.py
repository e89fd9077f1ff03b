from enum import Enum


class ConditionMode(Enum):
    REQUIRED = "required"
    REQUIRED_DISTINCT = "required_distinct"
    LEAVE_DECK = "leave_deck"
    NOT_DRAWN = "not_drawn"
