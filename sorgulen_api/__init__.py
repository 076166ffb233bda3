"""Sørgulen Industriservice order-intake API.

FastAPI backend that:
- accepts public service orders and stores them in Firestore
- emails a confirmation to the customer and an alert to operations,
  without holding up the request
- lets authenticated administrators list and update orders and manage
  administrator accounts

Usage:
    uvicorn sorgulen_api.main:create_app --factory --host 0.0.0.0 --port 10000
"""

__version__ = "1.0.0"
