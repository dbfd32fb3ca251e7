"""
Request scopes, handlers and dispatch
"""
