__all__ = ['giveaways_router', 'draw_router']

from .draw import router as draw_router
from .giveaways import router as giveaways_router
