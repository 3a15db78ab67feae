"""Authentication core: strategies and the gateway that orchestrates them"""
