"""JSON payloads for the snapshot tables.

Dumping goes through ``dataclasses.asdict``; loading rebuilds the nested
dataclasses and enums explicitly because JSON object keys are always strings.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict

from adr.domain.models.battle import BattleAction, BattleSession, BattleStatus, CombatantState, TurnLogEntry
from adr.domain.models.character import Character
from adr.domain.models.item import Item, ItemRestrictions, Shop, ShopListing
from adr.domain.models.jail import JailRecord, JailReleaseState
from adr.domain.models.vault import Stock, StockHolding, StockMarket, VaultAccount


def dumps(model: Any) -> str:
    return json.dumps(asdict(model), sort_keys=True)


def item_from_dict(data: Dict[str, Any]) -> Item:
    values = dict(data)
    restrictions = dict(values.pop("restrictions", None) or {})
    for key, value in restrictions.items():
        if isinstance(value, list):
            restrictions[key] = tuple(int(entry) for entry in value)
    return Item(restrictions=ItemRestrictions(**restrictions), **values)


def character_from_json(payload: str) -> Character:
    values = json.loads(payload)
    values["inventory"] = [item_from_dict(row) for row in values.get("inventory", [])]
    return Character(**values)


def battle_session_from_json(payload: str) -> BattleSession:
    values = json.loads(payload)
    values["player"] = CombatantState(**values["player"])
    values["monster"] = CombatantState(**values["monster"])
    values["status"] = BattleStatus(values["status"])
    values["log"] = [
        TurnLogEntry(
            **{
                **row,
                "action": BattleAction(row["action"]),
                "status": BattleStatus(row["status"]),
                "messages": tuple(row.get("messages", ())),
            }
        )
        for row in values.get("log", [])
    ]
    return BattleSession(**values)


def jail_record_from_json(payload: str) -> JailRecord:
    values = json.loads(payload)
    values["released"] = JailReleaseState(int(values["released"]))
    return JailRecord(**values)


def vault_account_from_json(payload: str) -> VaultAccount:
    values = json.loads(payload)
    values["holdings"] = {int(key): StockHolding(**row) for key, row in values.get("holdings", {}).items()}
    return VaultAccount(**values)


def shop_from_json(payload: str) -> Shop:
    values = json.loads(payload)
    values["listings"] = {
        int(key): ShopListing(item=item_from_dict(row["item"]), quantity=row.get("quantity"))
        for key, row in values.get("listings", {}).items()
    }
    return Shop(**values)


def stock_market_from_json(payload: str) -> StockMarket:
    values = json.loads(payload)
    return StockMarket(
        stocks={int(key): Stock(**row) for key, row in values.get("stocks", {}).items()},
        last_update=int(values.get("last_update", 0)),
    )
