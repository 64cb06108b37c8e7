from .giveaway import *
from .participant import *
from .draw import *

__all__ = [
    'GiveawayBase', 'GiveawayCreate', 'GiveawayUpdate', 'GiveawayRead', 'GiveawayListItem',
    'GiveawayStatusChange', 'WinnerInfo',
    'ParticipantCreate', 'ParticipantRead',
    'ErrorEnvelope', 'DrawResponse', 'AuditRead',
]
