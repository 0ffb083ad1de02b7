"""Application reactions – bus subscribers that persist notification intents."""
from depot_notify.application.reactions.handlers import REACTIONS, DirectNotice, Reaction, ReactionHandlers

__all__ = ["REACTIONS", "DirectNotice", "Reaction", "ReactionHandlers"]
