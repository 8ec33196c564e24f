"""
Authentication Domain Entities
The authenticated caller as seen by the workspace API. Users, roles and
organisations are managed by the identity service; only the claims we need
for organisation scoping are modelled here.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    id: str
    organisation_id: str = ""
