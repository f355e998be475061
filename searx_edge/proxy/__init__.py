"""
searx-edge proxy module.
"""
