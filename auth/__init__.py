"""auth/ -- Authentication and authorization package for TaskBoard.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or boards/. Board and task lookups reach the
gates through the ResourceLookup protocol in auth/interfaces.py.
api/ imports from auth/, not the other way around.
"""
