"""Aura Clash: 1v1 match logging, friends, Aura reputation and match recaps."""
