"""
Shared packages for the App Starter Kit
"""
