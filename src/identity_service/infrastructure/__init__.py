"""Infrastructure adapters: Redis, credential stores and session storage"""
