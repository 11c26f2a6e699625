"""
Embedding Proxy Gateway: serves third-party pages for same-origin dashboard iframes.
"""
