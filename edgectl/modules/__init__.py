"""
Bootstrap building blocks: remote access, control plane, add-ons and reporting.
"""
