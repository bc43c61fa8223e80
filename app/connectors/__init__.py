"""
app/connectors package marker.
"""

from app.connectors.base import BaseOrgConnector, OrgNotConnectedError, OrgRequestError
from app.connectors.salesforce_connector import SalesforceClientFactory, SalesforceConnector

__all__ = [
    "BaseOrgConnector",
    "OrgNotConnectedError",
    "OrgRequestError",
    "SalesforceClientFactory",
    "SalesforceConnector",
]
