"""
Economic nexus reference table.

Covers all 50 US states plus DC: whether the jurisdiction levies a sales
tax, its post-Wayfair revenue and transaction thresholds, how the two
thresholds combine, and whether marketplace-facilitated sales count
toward the seller's own threshold.

The table is read-only configuration. Build one with
``JurisdictionTable.default()`` or load a custom table from JSON and pass
it to the engine.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Union

from nexus_engine.errors import InvalidRuleConfiguration, UnknownJurisdiction

logger = logging.getLogger(__name__)


class ThresholdType(Enum):
    """How the revenue and transaction thresholds combine."""

    REVENUE_ONLY = "REVENUE_ONLY"
    TRANSACTION_ONLY = "TRANSACTION_ONLY"
    EITHER = "EITHER"  # whichever is met first
    BOTH = "BOTH"  # both must be met (rare)
    NONE = "NONE"  # no sales tax


@dataclass(frozen=True)
class JurisdictionRule:
    """
    Economic nexus rule set for one jurisdiction.

    ``revenue_threshold`` and ``transaction_threshold`` are ``None`` when
    the jurisdiction has no such threshold; ``0`` is a real threshold.
    """

    code: str
    name: str
    has_tax: bool
    revenue_threshold: Optional[Decimal]
    transaction_threshold: Optional[int]
    threshold_type: ThresholdType
    exclude_marketplace_sales: bool = False
    measurement_period: Optional[str] = None  # ROLLING_12, CALENDAR, ...
    effective_date: Optional[str] = None
    registration_url: Optional[str] = None
    notes: str = ""
    filing_frequency: Optional[str] = None
    registration_timing: Optional[str] = None
    special_rules: Optional[str] = None

    @classmethod
    def from_dict(cls, code: str, data: Mapping[str, Any]) -> "JurisdictionRule":
        """
        Build a rule from a raw mapping.

        Accepts the short keys used by the built-in table as well as the
        dataclass field names. An unrecognised ``threshold_type`` string
        is kept as-is so the evaluator can flag it instead of crashing.
        """
        code = code.strip().upper()
        name = data.get("name")
        if not code or not name:
            raise InvalidRuleConfiguration(
                code or "?", "rule needs a jurisdiction code and name"
            )

        raw_type = data.get("threshold_type", data.get("type", "NONE"))
        threshold_type = _parse_threshold_type(raw_type)
        if not isinstance(threshold_type, ThresholdType):
            logger.warning(
                "%s: unrecognised threshold type %r", code, raw_type
            )

        return cls(
            code=code,
            name=str(name),
            has_tax=bool(data.get("has_tax", False)),
            revenue_threshold=_parse_revenue(
                code, data.get("revenue_threshold", data.get("revenue"))
            ),
            transaction_threshold=_parse_count(
                code,
                data.get("transaction_threshold", data.get("transactions")),
            ),
            threshold_type=threshold_type,
            exclude_marketplace_sales=bool(
                data.get(
                    "exclude_marketplace_sales",
                    data.get("exclude_marketplace", False),
                )
            ),
            measurement_period=data.get(
                "measurement_period", data.get("period")
            ),
            effective_date=data.get("effective_date", data.get("effective")),
            registration_url=data.get("registration_url", data.get("url")),
            notes=data.get("notes", "") or "",
            filing_frequency=data.get("filing_frequency"),
            registration_timing=data.get("registration_timing"),
            special_rules=data.get("special_rules"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "has_tax": self.has_tax,
            "revenue_threshold": self.revenue_threshold,
            "transaction_threshold": self.transaction_threshold,
            "threshold_type": (
                self.threshold_type.value
                if isinstance(self.threshold_type, ThresholdType)
                else str(self.threshold_type)
            ),
            "exclude_marketplace_sales": self.exclude_marketplace_sales,
            "measurement_period": self.measurement_period,
            "effective_date": self.effective_date,
            "registration_url": self.registration_url,
            "notes": self.notes,
            "filing_frequency": self.filing_frequency,
            "registration_timing": self.registration_timing,
            "special_rules": self.special_rules,
        }


def _parse_threshold_type(value: Any) -> Union[ThresholdType, str]:
    if isinstance(value, ThresholdType):
        return value
    try:
        return ThresholdType(str(value).strip().upper())
    except ValueError:
        return str(value)


def _parse_revenue(code: str, value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidRuleConfiguration(
            code, f"revenue threshold {value!r} is not a number"
        ) from e


def _parse_count(code: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidRuleConfiguration(
            code, f"transaction threshold {value!r} is not an integer"
        ) from e


# ---------------------------------------------------------------------------
# Built-in 50-state + DC economic nexus data
# ---------------------------------------------------------------------------

_JURISDICTION_DATA: dict[str, dict] = {
    "AL": {
        "name": "Alabama",
        "has_tax": True,
        "revenue": 250000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.revenue.alabama.gov/sales-use/",
        "notes": "Alabama has a $250,000 revenue threshold. Marketplace sales are excluded from threshold calculation.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before making taxable sales",
        "special_rules": "No transaction count threshold",
    },
    "AK": {
        "name": "Alaska",
        "has_tax": False,
        "revenue": None,
        "transactions": None,
        "type": ThresholdType.NONE,
        "period": None,
        "exclude_marketplace": False,
        "effective": None,
        "url": None,
        "notes": "Alaska has no statewide sales tax. Some local jurisdictions may have sales taxes.",
        "filing_frequency": None,
        "registration_timing": None,
        "special_rules": "No state sales tax; local jurisdictions may impose sales taxes",
    },
    "AZ": {
        "name": "Arizona",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "CALENDAR",
        "exclude_marketplace": True,
        "effective": "2019-10-01",
        "url": "https://azdor.gov/transaction-privilege-tax",
        "notes": "Arizona calls it Transaction Privilege Tax (TPT). $100,000 threshold based on calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register within 15 days of establishing nexus",
        "special_rules": "Marketplace sales excluded; unique TPT system",
    },
    "AR": {
        "name": "Arkansas",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-07-01",
        "url": "https://www.dfa.arkansas.gov/excise-tax/sales-and-use-tax/",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Marketplace facilitator sales excluded from threshold",
    },
    "CA": {
        "name": "California",
        "has_tax": True,
        "revenue": 500000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-04-01",
        "url": "https://www.cdtfa.ca.gov/taxes-and-fees/sales-and-use-tax.htm",
        "notes": "California has a $500,000 revenue threshold. No transaction count threshold.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before making taxable sales",
        "special_rules": "Higher threshold than most states; marketplace sales excluded",
    },
    "CO": {
        "name": "Colorado",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-06-01",
        "url": "https://tax.colorado.gov/sales-use-tax",
        "notes": "$100,000 revenue threshold. Complex home rule jurisdictions require separate registration.",
        "filing_frequency": "Monthly, quarterly, or annually",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Home rule cities may require separate filing; marketplace sales excluded",
    },
    "CT": {
        "name": "Connecticut",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-12-01",
        "url": "https://portal.ct.gov/DRS/Sales-Tax/Sales-Tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "One of the earliest adopters post-Wayfair",
    },
    "DE": {
        "name": "Delaware",
        "has_tax": False,
        "revenue": None,
        "transactions": None,
        "type": ThresholdType.NONE,
        "period": None,
        "exclude_marketplace": False,
        "effective": None,
        "url": None,
        "notes": "Delaware has no sales tax.",
        "filing_frequency": None,
        "registration_timing": None,
        "special_rules": "No sales tax state",
    },
    "FL": {
        "name": "Florida",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2021-07-01",
        "url": "https://floridarevenue.com/taxes/taxesfees/Pages/sales_tax.aspx",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or semi-annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Later adopter; marketplace sales excluded",
    },
    "GA": {
        "name": "Georgia",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-01-01",
        "url": "https://dor.georgia.gov/sales-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Marketplace facilitator law in effect",
    },
    "HI": {
        "name": "Hawaii",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://tax.hawaii.gov/geninfo/get/",
        "notes": "Hawaii has General Excise Tax (GET), not traditional sales tax. $100,000 or 200 transactions.",
        "filing_frequency": "Monthly, quarterly, or semi-annually",
        "registration_timing": "Register before engaging in business",
        "special_rules": "GET applies broadly to business activities, not just retail sales",
    },
    "ID": {
        "name": "Idaho",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-06-01",
        "url": "https://tax.idaho.gov/i-1019.cfm",
        "notes": "$100,000 revenue threshold only. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold; marketplace sales excluded",
    },
    "IL": {
        "name": "Illinois",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "ROLLING_12",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://tax.illinois.gov/businesses/taxinformation/sales.html",
        "notes": "$100,000 revenue OR 200 transactions in preceding 12 months.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Rolling 12-month measurement period",
    },
    "IN": {
        "name": "Indiana",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.in.gov/dor/business-tax/sales-tax/",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "IA": {
        "name": "Iowa",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-01-01",
        "url": "https://tax.iowa.gov/sales-and-use-tax",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold",
    },
    "KS": {
        "name": "Kansas",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2021-07-01",
        "url": "https://www.ksrevenue.gov/salesanduse.html",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Later adopter; revenue-only threshold",
    },
    "KY": {
        "name": "Kentucky",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://revenue.ky.gov/Sales-Use-Tax/Pages/default.aspx",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Early adopter post-Wayfair",
    },
    "LA": {
        "name": "Louisiana",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://revenue.louisiana.gov/SalesTax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Early adopter immediately after Wayfair",
    },
    "ME": {
        "name": "Maine",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://www.maine.gov/revenue/taxes/sales-use-tax",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold; early adopter",
    },
    "MD": {
        "name": "Maryland",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.marylandtaxes.gov/business/sales-use/",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "MA": {
        "name": "Massachusetts",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-10-01",
        "url": "https://www.mass.gov/guides/sales-and-use-tax",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold",
    },
    "MI": {
        "name": "Michigan",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.michigan.gov/taxes/business-taxes/sales-use",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "MN": {
        "name": "Minnesota",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "ROLLING_12",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.revenue.state.mn.us/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in preceding 12 months.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Rolling 12-month measurement period",
    },
    "MS": {
        "name": "Mississippi",
        "has_tax": True,
        "revenue": 250000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "ROLLING_12",
        "exclude_marketplace": True,
        "effective": "2018-09-01",
        "url": "https://www.dor.ms.gov/sales-tax",
        "notes": "$250,000 revenue threshold in preceding 12 months. Higher than most states.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Higher threshold; rolling 12-month period",
    },
    "MO": {
        "name": "Missouri",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2023-01-01",
        "url": "https://dor.mo.gov/taxation/business/sales-use/",
        "notes": "$100,000 revenue threshold. Later adopter (2023).",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Very late adopter; revenue-only threshold",
    },
    "MT": {
        "name": "Montana",
        "has_tax": False,
        "revenue": None,
        "transactions": None,
        "type": ThresholdType.NONE,
        "period": None,
        "exclude_marketplace": False,
        "effective": None,
        "url": None,
        "notes": "Montana has no sales tax.",
        "filing_frequency": None,
        "registration_timing": None,
        "special_rules": "No sales tax state",
    },
    "NE": {
        "name": "Nebraska",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-01-01",
        "url": "https://revenue.nebraska.gov/businesses/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "NV": {
        "name": "Nevada",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-11-01",
        "url": "https://tax.nv.gov/SalesAndUseTax/SalesAndUseTax/",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "NH": {
        "name": "New Hampshire",
        "has_tax": False,
        "revenue": None,
        "transactions": None,
        "type": ThresholdType.NONE,
        "period": None,
        "exclude_marketplace": False,
        "effective": None,
        "url": None,
        "notes": "New Hampshire has no sales tax.",
        "filing_frequency": None,
        "registration_timing": None,
        "special_rules": "No sales tax state",
    },
    "NJ": {
        "name": "New Jersey",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-11-01",
        "url": "https://www.nj.gov/treasury/taxation/businesses/salestax/",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "NM": {
        "name": "New Mexico",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-07-01",
        "url": "https://www.tax.newmexico.gov/businesses/gross-receipts-tax/",
        "notes": "New Mexico has Gross Receipts Tax (GRT). $100,000 revenue threshold.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "GRT system; revenue-only threshold",
    },
    "NY": {
        "name": "New York",
        "has_tax": True,
        "revenue": 500000,
        "transactions": 100,
        "type": ThresholdType.EITHER,
        "period": "ROLLING_4_QUARTERS",
        "exclude_marketplace": True,
        "effective": "2019-06-21",
        "url": "https://www.tax.ny.gov/bus/st/stidx.htm",
        "notes": "$500,000 revenue AND 100 transactions in preceding 4 quarters. Higher thresholds than most states.",
        "filing_frequency": "Quarterly or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Higher revenue threshold; lower transaction count; both must be met",
    },
    "NC": {
        "name": "North Carolina",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-11-01",
        "url": "https://www.ncdor.gov/taxes-forms/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or semi-annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "ND": {
        "name": "North Dakota",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.nd.gov/tax/user/businesses/sales-and-use-tax",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold",
    },
    "OH": {
        "name": "Ohio",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-08-01",
        "url": "https://tax.ohio.gov/business/ohio-business-taxes/sales-and-use",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Early adopter post-Wayfair",
    },
    "OK": {
        "name": "Oklahoma",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://oklahoma.gov/tax/businesses/sales-and-use-tax.html",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold; early adopter",
    },
    "OR": {
        "name": "Oregon",
        "has_tax": False,
        "revenue": None,
        "transactions": None,
        "type": ThresholdType.NONE,
        "period": None,
        "exclude_marketplace": False,
        "effective": None,
        "url": None,
        "notes": "Oregon has no sales tax.",
        "filing_frequency": None,
        "registration_timing": None,
        "special_rules": "No sales tax state",
    },
    "PA": {
        "name": "Pennsylvania",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "ROLLING_12",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://www.revenue.pa.gov/TaxTypes/SUT/Pages/default.aspx",
        "notes": "$100,000 revenue in preceding 12 months. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or semi-annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Rolling 12-month period; revenue-only",
    },
    "RI": {
        "name": "Rhode Island",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-07-01",
        "url": "https://tax.ri.gov/taxation/sales/",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "SC": {
        "name": "South Carolina",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-11-01",
        "url": "https://dor.sc.gov/tax/sales",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold",
    },
    "SD": {
        "name": "South Dakota",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://dor.sd.gov/businesses/taxes/sales-use-tax/",
        "notes": "$100,000 revenue OR 200 transactions. This is the Wayfair case state!",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Original Wayfair case state; standard thresholds",
    },
    "TN": {
        "name": "Tennessee",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "ROLLING_12",
        "exclude_marketplace": True,
        "effective": "2019-10-01",
        "url": "https://www.tn.gov/revenue/taxes/sales-and-use-tax.html",
        "notes": "$100,000 revenue in preceding 12 months. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Rolling 12-month period; revenue-only",
    },
    "TX": {
        "name": "Texas",
        "has_tax": True,
        "revenue": 500000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "ROLLING_12",
        "exclude_marketplace": True,
        "effective": "2019-10-01",
        "url": "https://comptroller.texas.gov/taxes/sales/",
        "notes": "$500,000 revenue in preceding 12 months. Higher threshold than most states.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Higher threshold; rolling 12-month period",
    },
    "UT": {
        "name": "Utah",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-01-01",
        "url": "https://tax.utah.gov/sales",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "VT": {
        "name": "Vermont",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-07-01",
        "url": "https://tax.vermont.gov/business-and-corp/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Early adopter; standard thresholds",
    },
    "VA": {
        "name": "Virginia",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-07-01",
        "url": "https://www.tax.virginia.gov/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "WA": {
        "name": "Washington",
        "has_tax": True,
        "revenue": 100000,
        "transactions": None,
        "type": ThresholdType.REVENUE_ONLY,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://dor.wa.gov/taxes-rates/sales-and-use-tax",
        "notes": "$100,000 revenue threshold. No transaction count.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Revenue-only threshold",
    },
    "WV": {
        "name": "West Virginia",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-01-01",
        "url": "https://tax.wv.gov/Business/SalesAndUseTax/Pages/SalesAndUseTax.aspx",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "WI": {
        "name": "Wisconsin",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2018-10-01",
        "url": "https://www.revenue.wi.gov/pages/faqs/sales.aspx",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "WY": {
        "name": "Wyoming",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-02-01",
        "url": "https://revenue.wyo.gov/excise-tax-division/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly, quarterly, or annually based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Standard threshold structure",
    },
    "DC": {
        "name": "District of Columbia",
        "has_tax": True,
        "revenue": 100000,
        "transactions": 200,
        "type": ThresholdType.EITHER,
        "period": "PREVIOUS_CURRENT",
        "exclude_marketplace": True,
        "effective": "2019-01-01",
        "url": "https://otr.cfo.dc.gov/page/sales-and-use-tax",
        "notes": "$100,000 revenue OR 200 transactions in previous or current calendar year.",
        "filing_frequency": "Monthly or quarterly based on tax liability",
        "registration_timing": "Register before collecting tax",
        "special_rules": "Treated like a state for sales tax purposes",
    },
}


class JurisdictionTable(Mapping[str, JurisdictionRule]):
    """
    Immutable mapping of jurisdiction code to ``JurisdictionRule``.

    Lookups are case-insensitive. With ``strict=True`` any rule whose
    thresholds contradict its declared type is rejected at construction
    with ``InvalidRuleConfiguration``; otherwise such rules are kept and
    flagged at evaluation time.
    """

    def __init__(
        self,
        rules: Union[Mapping[str, JurisdictionRule], list[JurisdictionRule]],
        strict: bool = False,
    ) -> None:
        items = rules.values() if isinstance(rules, Mapping) else rules
        loaded: dict[str, JurisdictionRule] = {}
        for rule in items:
            if strict:
                # Local import: the evaluator depends on this module.
                from nexus_engine.evaluator import rule_anomalies

                problems = rule_anomalies(rule)
                if problems:
                    raise InvalidRuleConfiguration(rule.code, "; ".join(problems))
            loaded[rule.code.upper()] = rule
        self._rules: Mapping[str, JurisdictionRule] = MappingProxyType(loaded)
        logger.debug("Loaded %d jurisdiction rules", len(loaded))

    @classmethod
    def default(cls) -> "JurisdictionTable":
        """The built-in 50-state + DC table."""
        return cls(
            [
                JurisdictionRule.from_dict(code, data)
                for code, data in _JURISDICTION_DATA.items()
            ]
        )

    @classmethod
    def from_dict(
        cls, data: Union[Mapping[str, Any], list], strict: bool = False
    ) -> "JurisdictionTable":
        """
        Build a table from parsed JSON.

        Accepts either ``{"CA": {...}, ...}`` or a list of rule objects
        that each carry a ``code`` key.
        """
        if isinstance(data, Mapping):
            rules = [
                JurisdictionRule.from_dict(code, raw)
                for code, raw in data.items()
            ]
        else:
            rules = [
                JurisdictionRule.from_dict(str(raw.get("code", "")), raw)
                for raw in data
            ]
        return cls(rules, strict=strict)

    @classmethod
    def from_json(
        cls, path: Union[str, Path], strict: bool = False
    ) -> "JurisdictionTable":
        """Load a custom reference table from a JSON file."""
        json_path = Path(path)
        with open(json_path, encoding="utf-8") as f:
            data = json.load(f)
        logger.debug("Reading jurisdiction rules from %s", json_path)
        return cls.from_dict(data, strict=strict)

    # -- Mapping protocol -------------------------------------------------

    def __getitem__(self, code: str) -> JurisdictionRule:
        return self._rules[code.upper()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.upper() in self._rules

    # -- Queries ----------------------------------------------------------

    def get_rule(self, code: str) -> JurisdictionRule:
        """Return the rule for ``code`` or raise ``UnknownJurisdiction``."""
        rule = self._rules.get(code.strip().upper())
        if rule is None:
            raise UnknownJurisdiction(code)
        return rule

    def with_sales_tax(self) -> list[JurisdictionRule]:
        """Rules of jurisdictions that levy a sales tax, sorted by code."""
        return [rule for rule in self.all_rules() if rule.has_tax]

    def without_sales_tax(self) -> list[JurisdictionRule]:
        """Rules of jurisdictions with no sales tax, sorted by code."""
        return [rule for rule in self.all_rules() if not rule.has_tax]

    def all_rules(self) -> list[JurisdictionRule]:
        """All rules sorted by code."""
        return [self._rules[k] for k in sorted(self._rules)]
