"""plansync.integrations — External service gateway modules.

All outbound HTTP calls to the published sheet and its write endpoint must
go through a gateway in this package, never via bare `requests` calls in
services or blueprints.

Current gateways:
  sheet_gateway.SheetGateway — published TSV feeds + script write endpoint
"""
