"""auth/ -- Credential, token and workflow package for the SSO service.

Layer rule: auth/ imports from core/ (config, errors, validation) and
third-party libraries only. It does NOT import from api/.
api/ and main.py import from auth/, not the other way around.
"""
