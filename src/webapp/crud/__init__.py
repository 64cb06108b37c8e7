from .giveaway import *
from .participant import *

__all__ = [
    'get_giveaway', 'get_creator_giveaway', 'get_creator_giveaways', 'get_open_giveaways',
    'create_giveaway', 'update_giveaway', 'set_giveaway_status', 'commit_draw_result',
    'get_participants', 'get_participant', 'create_participant',
]
