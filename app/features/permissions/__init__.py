"""
Authorization feature module.

Role hierarchy and permission matrix (RBAC), attribute refinement on resource
instances (ABAC), the decision facade used by routes, and UI visibility flags
derived from the same decisions.
"""
