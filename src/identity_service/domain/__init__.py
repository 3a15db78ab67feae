"""Domain layer: identity models, outcomes and errors"""
