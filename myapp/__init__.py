"""
Reference Strix application: a small user directory with a login-gated
dashboard and a JSON API.
"""
