"""Configuration for Identity Service"""
