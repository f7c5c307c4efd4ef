"""accounts/ -- Account domain package for Usersvc: credential guard, stores, service.

Layer rule: accounts/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ imports from accounts/, not the other way around.
"""
