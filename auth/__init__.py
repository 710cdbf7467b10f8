"""auth/ -- Authentication and authorization package for LocalHelp.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, listings/, or geocode/.
api/ and listings/ import from auth/, not the other way around.
"""
