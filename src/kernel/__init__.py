"""
Kernel Layer

Foundations shared by the moderation engine and the API surface:
- Entity models (novels, categories, moderation actions)
- Identity: the operator's session context (credentials, expiry)
- Transport: the admin REST client and its error type
- Services: per-kind collaborator endpoints (transitions, list fetch)

Session and client state are passed explicitly; nothing here is a
module-level global.
"""
