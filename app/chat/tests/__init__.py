"""
Tests for chat app.

- test_services.py: Room provisioning for paid orders
"""
