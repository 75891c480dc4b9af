"""
Compass API
Agent, agent member and traveller accounts with role based access control
"""
