"""Redis connection management"""
