"""
API router - aggregates all resource routers under the API prefix.
"""
from fastapi import APIRouter

from entreprenapp.api.endpoints import (
    auth,
    challenges,
    comments,
    events,
    friends,
    messages,
    notifications,
    posts,
    projects,
    search,
    suggestions,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(posts.router)
api_router.include_router(comments.router)
api_router.include_router(friends.router)
api_router.include_router(events.router)
api_router.include_router(projects.router)
api_router.include_router(challenges.router)
api_router.include_router(messages.router)
api_router.include_router(notifications.router)
api_router.include_router(suggestions.router)
api_router.include_router(search.router)
