from fastapi import APIRouter

from fuelflow.api.v1.endpoints import (
    account_heads,
    allocations,
    cashbook,
    clients,
    invoices,
    payments,
    sales,
    stock,
)

api_router = APIRouter()

api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(clients.projects_router, prefix="/projects", tags=["projects"])
api_router.include_router(account_heads.router, prefix="/account-heads", tags=["account heads"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(cashbook.router, prefix="/cashbook", tags=["cashbook"])
api_router.include_router(allocations.router, prefix="/allocations", tags=["allocations"])
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])
