"""
Temporal activity wrappers and workflow proxies.

Kept import-free: workflow code imports proxies.py, the worker imports
activities.py, and neither should pull in the other's dependencies inside
the workflow sandbox.
"""
