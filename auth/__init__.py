"""auth/ -- Authentication and authorization package for the KIN API.

Layer rule: auth/ imports stdlib, third-party libraries, and core/.
It does NOT import from api/, content/, or storage/.
api/ imports from auth/, not the other way around.
"""
