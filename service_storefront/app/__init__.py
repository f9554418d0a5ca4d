"""
Storefront API service: catalog reads behind an in-process response cache.
"""
