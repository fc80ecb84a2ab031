"""GraphQL schema for the event planner service."""

import strawberry

from .resolvers import Mutation, Query, Subscription

schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    subscription=Subscription,
)
