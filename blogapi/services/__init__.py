# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   user_service     — registration, login, profile and admin operations
#   post_service     — post creation, slug derivation and post reads
#   comment_service  — comment creation and paginated comment reads
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary: handlers
# that write call ``commit()`` before returning, and ``get_db`` rolls
# back if anything raises.  Failures are raised as ``blogapi.errors``
# exceptions rather than returned.
