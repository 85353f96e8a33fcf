"""
Policies service for the Policy Layer.

Attaches ordered, firewall-style rules to provider access grants and to
provider defaults, and evaluates provider actions against the combined chain.
"""
