"""listings/ -- Owned resources: service offers, service requests, rental listings.

Layer rule: listings/ may import from core/ and auth/ (User type and the
authorization policy). It does NOT import from api/ or geocode/.
"""
