# melbox/services/feed/__init__.py
from melbox.services.feed.cache import FeedCache, FeedSnapshot, GUEST_IDENTITY
from melbox.services.feed.controller import FeedController, FeedMutationError, HydrationState
from melbox.services.feed.optimistic import OptimisticCommand
from melbox.services.feed.store import SocialFeedStore
