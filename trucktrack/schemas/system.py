"""Schémas pydantic: authentification, paramètres, restauration."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class LoginIn(BaseModel):
    login: str = Field(min_length=1)
    password: str = Field(min_length=1)


class CompanyIn(BaseModel):
    name: Optional[str] = None
    niu: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None


class TaxesIn(BaseModel):
    tva: Optional[float] = Field(default=None, ge=0, le=100)
    tps: Optional[float] = Field(default=None, ge=0, le=100)


class SettingsPatch(BaseModel):
    company: Optional[CompanyIn] = None
    taxes: Optional[TaxesIn] = None
    currency: Optional[str] = None
    sub_categories: Optional[dict[str, list[str]]] = None


class RestoreIn(BaseModel):
    version: Optional[str] = None
    exportedAt: Optional[str] = None
    data: Optional[dict[str, Any]] = None
