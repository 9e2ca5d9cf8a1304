# herbal_ledger/api/deps.py
from __future__ import annotations

from fastapi import Request

from herbal_ledger.services.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services
