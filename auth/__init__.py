"""auth/ -- Authentication core for userbase: hashing, tokens, the gate, services, store.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or rpc/. api/ and rpc/ import from auth/, not
the other way around (auth/dependencies.py is the one FastAPI-aware module).
"""
