# Marks `sponsor_portal.deps` as a package so imports like
# `from sponsor_portal.deps.auth import require_route_access` work reliably.
