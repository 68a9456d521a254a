"""Services built on the local mirror."""

from grafana_console.services.memberships import MembershipService

__all__ = ["MembershipService"]
