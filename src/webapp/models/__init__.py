from .giveaway import Giveaway, GiveawayStatus, CREATOR_TRANSITIONS, OPEN_STATUSES, can_transition
from .participant import Participant

__all__ = ['Giveaway', 'GiveawayStatus', 'CREATOR_TRANSITIONS', 'OPEN_STATUSES', 'can_transition', 'Participant']
