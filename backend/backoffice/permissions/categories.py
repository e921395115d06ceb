# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for grouping and UI display."""
    INVENTORY = "INVENTORY"
    PURCHASES = "PURCHASES"
    SALES = "SALES"
    RETURNS = "RETURNS"
    PARTNERS = "PARTNERS"
    BRANCHES = "BRANCHES"
    PLATFORM = "PLATFORM"
