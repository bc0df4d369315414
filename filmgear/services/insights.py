# FilmGear Booking - Film Equipment Booking and Inventory System
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Usage insights built from booking history.

Everything here is a plain aggregation over the database; there is no
trained model behind the "predictions".
"""

import re
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from filmgear.errors import NotFound
from filmgear.models.booking import Booking
from filmgear.models.equipment import Equipment, MaintenanceRecord
from filmgear.services import stats


def get_season(d: date) -> str:
    if 3 <= d.month <= 5:
        return "spring"
    if 6 <= d.month <= 8:
        return "summer"
    if 9 <= d.month <= 11:
        return "fall"
    return "winter"


def calculate_confidence(data_points: int) -> float:
    """Confidence grows with the number of historical bookings."""
    if data_points == 0:
        return 0.3
    if data_points < 5:
        return 0.5
    if data_points < 20:
        return 0.7
    return 0.9


def overdue_severity(days_overdue: int) -> str:
    if days_overdue > 7:
        return "high"
    if days_overdue > 3:
        return "medium"
    return "low"


class InsightService:
    """Heuristic insights over equipment and bookings."""

    SEASONAL_TRENDS = {
        "camera": {"summer": 1.3, "winter": 0.8, "spring": 1.1, "fall": 1.0},
        "lighting": {"summer": 1.2, "winter": 1.4, "spring": 1.0, "fall": 1.1},
        "audio": {"summer": 1.1, "winter": 0.9, "spring": 1.0, "fall": 1.0},
        "tripod": {"summer": 1.0, "winter": 0.8, "spring": 1.2, "fall": 1.1},
    }

    # Indexed by date.weekday(), Monday first
    WEEKDAY_TRENDS = (1.2, 1.1, 1.0, 1.1, 1.3, 0.8, 0.5)

    # Categories commonly rented together
    COMBINATIONS = {
        "camera": ["lens", "tripod", "monitor"],
        "lens": ["camera", "tripod"],
        "lighting": ["grip", "cable"],
        "audio": ["cable", "monitor"],
        "tripod": ["camera", "lens"],
    }

    CATEGORY_SYNONYMS = {
        "camera": ["camera", "cam", "cinema", "body", "camcorder"],
        "lens": ["lens", "lenses", "glass", "prime", "zoom", "optic"],
        "lighting": ["light", "lights", "lighting", "led", "lamp", "panel"],
        "audio": ["audio", "sound", "mic", "microphone", "recorder", "boom"],
        "tripod": ["tripod", "sticks", "stand", "head"],
        "grip": ["grip", "clamp", "rig", "dolly", "slider"],
        "monitor": ["monitor", "display", "screen", "viewfinder"],
        "computer": ["computer", "laptop", "workstation"],
        "cable": ["cable", "cables", "sdi", "hdmi", "xlr", "wire"],
        "accessory": ["accessory", "battery", "batteries", "charger", "card"],
    }

    HIGH_ACTIVITY_THRESHOLD = 5
    IDLE_DAYS = 30

    def summary(self, db: Session) -> Dict[str, Any]:
        """Dashboard-style overview with a few derived findings."""
        overview = stats.equipment_overview(db)
        today = date.today()

        overdue_count = (
            db.query(func.count(Booking.id))
            .filter(Booking.status.in_(("approved", "active")), Booking.end_date < today)
            .scalar()
            or 0
        )

        category_rows = (
            db.query(Equipment.category, func.count(Booking.id))
            .join(Booking, Booking.equipment_id == Equipment.id)
            .group_by(Equipment.category)
            .order_by(func.count(Booking.id).desc())
            .limit(5)
            .all()
        )

        cutoff = today - timedelta(days=self.IDLE_DAYS)
        recently_booked = (
            db.query(Booking.equipment_id).filter(Booking.end_date >= cutoff).distinct()
        )
        idle = (
            db.query(Equipment)
            .filter(
                Equipment.is_active.is_(True),
                Equipment.status == "available",
                ~Equipment.id.in_(recently_booked),
            )
            .order_by(Equipment.name)
            .all()
        )

        findings = []
        if overdue_count:
            findings.append(
                {
                    "type": "overdue",
                    "severity": "high" if overdue_count > 3 else "medium",
                    "message": f"{overdue_count} booking(s) are past their return date",
                }
            )
        if idle:
            findings.append(
                {
                    "type": "idle_equipment",
                    "severity": "low",
                    "message": f"{len(idle)} item(s) have not been booked in {self.IDLE_DAYS} days",
                }
            )
        if overview["utilization_rate"] >= 80:
            findings.append(
                {
                    "type": "high_utilization",
                    "severity": "medium",
                    "message": "Most equipment is currently out; consider expanding inventory",
                }
            )

        return {
            "utilization_rate": overview["utilization_rate"],
            "equipment": overview,
            "overdue_bookings": overdue_count,
            "top_categories": [{"category": c, "bookings": n} for c, n in category_rows],
            "idle_equipment": [e.to_summary() for e in idle[:10]],
            "findings": findings,
        }

    def predict_availability(
        self, db: Session, equipment_id: int, start_date: date, end_date: date
    ) -> Dict[str, Any]:
        """Estimate how likely the equipment is free over a range."""
        equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
        if not equipment:
            raise NotFound("Equipment not found")

        year_ago = date.today() - timedelta(days=365)
        history = (
            db.query(Booking)
            .filter(
                Booking.equipment_id == equipment_id,
                Booking.status.in_(("completed", "active")),
                Booking.start_date >= year_ago,
            )
            .all()
        )

        base_probability = 0.8
        if history:
            booked_days = sum(b.duration_days for b in history)
            base_probability = max(0.1, 1 - booked_days / 365)

        seasonal = self.SEASONAL_TRENDS.get(equipment.category, {}).get(get_season(start_date), 1.0)
        weekday = self.WEEKDAY_TRENDS[start_date.weekday()]

        probability = min(1.0, max(0.0, base_probability * seasonal * weekday))

        return {
            "equipment_id": equipment.id,
            "equipment_name": equipment.name,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "days": (end_date - start_date).days,
            "availability_probability": round(probability, 4),
            "confidence": calculate_confidence(len(history)),
            "factors": {
                "base_probability": round(base_probability, 4),
                "seasonal_multiplier": seasonal,
                "day_multiplier": weekday,
                "historical_bookings": len(history),
            },
        }

    def pairing_suggestions(self, db: Session, equipment_id: int, user_id: int) -> Dict[str, Any]:
        """Suggest equipment to rent alongside the given item."""
        equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
        if not equipment:
            raise NotFound("Equipment not found")

        def available_in(category: str, limit: int) -> List[Equipment]:
            return (
                db.query(Equipment)
                .filter(
                    Equipment.category == category,
                    Equipment.status == "available",
                    Equipment.is_active.is_(True),
                    Equipment.id != equipment.id,
                )
                .limit(limit)
                .all()
            )

        suggestions = []
        for category in self.COMBINATIONS.get(equipment.category, []):
            suggestions.append(
                {
                    "type": "category",
                    "category": category,
                    "equipment": [e.to_summary() for e in available_in(category, 3)],
                    "reason": f"Often rented with {equipment.category}",
                }
            )

        history_categories = (
            db.query(Equipment.category)
            .join(Booking, Booking.equipment_id == Equipment.id)
            .filter(
                Booking.user_id == user_id,
                Booking.status.in_(("completed", "active")),
            )
            .distinct()
            .all()
        )
        for (category,) in history_categories:
            if category == equipment.category:
                continue
            matches = available_in(category, 2)
            if matches:
                suggestions.append(
                    {
                        "type": "user_history",
                        "category": category,
                        "equipment": [e.to_summary() for e in matches],
                        "reason": "Based on your booking history",
                    }
                )

        return {
            "primary_equipment": equipment.to_summary(),
            "suggestions": suggestions[:5],
        }

    def detect_anomalies(self, db: Session) -> List[Dict[str, Any]]:
        """Overdue returns and unusually busy borrowers."""
        today = date.today()
        anomalies = []

        overdue = (
            db.query(Booking)
            .options(joinedload(Booking.equipment), joinedload(Booking.user))
            .filter(Booking.status.in_(("approved", "active")), Booking.end_date < today)
            .order_by(Booking.end_date)
            .all()
        )
        for booking in overdue:
            days = (today - booking.end_date).days
            anomalies.append(
                {
                    "type": "overdue",
                    "severity": overdue_severity(days),
                    "booking": booking.to_dict(),
                    "days_overdue": days,
                    "description": f"Equipment overdue by {days} days",
                }
            )

        week_ago = datetime.utcnow() - timedelta(days=7)
        busy = (
            db.query(Booking.user_id, func.count(Booking.id))
            .filter(Booking.created_at >= week_ago)
            .group_by(Booking.user_id)
            .having(func.count(Booking.id) > self.HIGH_ACTIVITY_THRESHOLD)
            .all()
        )
        for user_id, count in busy:
            anomalies.append(
                {
                    "type": "high_activity",
                    "severity": "medium",
                    "user_id": user_id,
                    "booking_count": count,
                    "description": f"User has {count} bookings in the last week",
                }
            )

        return anomalies

    def usage_report(self, db: Session, start_date: date, end_date: date) -> Dict[str, Any]:
        """Bookings, days and revenue per equipment and category in a window."""
        bookings = (
            db.query(Booking)
            .options(joinedload(Booking.equipment))
            .filter(
                Booking.start_date >= start_date,
                Booking.end_date <= end_date,
                Booking.status.in_(("completed", "active")),
            )
            .all()
        )

        per_equipment: Dict[int, Dict[str, Any]] = {}
        per_category: Dict[str, Dict[str, Any]] = defaultdict(
            lambda: {"bookings": 0, "total_days": 0, "revenue": 0.0}
        )

        for b in bookings:
            entry = per_equipment.setdefault(
                b.equipment_id,
                {
                    "equipment": b.equipment.to_summary(),
                    "bookings": 0,
                    "total_days": 0,
                    "revenue": 0.0,
                },
            )
            entry["bookings"] += 1
            entry["total_days"] += b.duration_days
            entry["revenue"] += b.total_cost or 0

            cat = per_category[b.equipment.category]
            cat["bookings"] += 1
            cat["total_days"] += b.duration_days
            cat["revenue"] += b.total_cost or 0

        popular = sorted(per_equipment.values(), key=lambda e: e["bookings"], reverse=True)[:10]

        return {
            "period": {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            "total_bookings": len(bookings),
            "total_revenue": sum(b.total_cost or 0 for b in bookings),
            "equipment_usage": list(per_equipment.values()),
            "category_usage": dict(per_category),
            "popular_equipment": popular,
        }

    def maintenance_predictions(
        self, db: Session, equipment_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Rank equipment by how overdue it is for a service."""
        query = db.query(Equipment).filter(
            Equipment.is_active.is_(True), Equipment.status != "lost"
        )
        if equipment_id:
            query = query.filter(Equipment.id == equipment_id)

        today = date.today()
        predictions = []

        for equipment in query.all():
            last = (
                db.query(func.max(MaintenanceRecord.date))
                .filter(MaintenanceRecord.equipment_id == equipment.id)
                .scalar()
            )
            since = last or equipment.purchase_date or equipment.created_at.date()
            days_since = (today - since).days

            rentals_since = (
                db.query(func.count(Booking.id))
                .filter(
                    Booking.equipment_id == equipment.id,
                    Booking.status == "completed",
                    Booking.end_date >= since,
                )
                .scalar()
                or 0
            )

            if equipment.status == "damaged" or days_since > 180 or rentals_since >= 20:
                risk = "high"
                recommendation = "Schedule maintenance now"
            elif days_since > 90 or rentals_since >= 10:
                risk = "medium"
                recommendation = "Plan maintenance within the next month"
            else:
                risk = "low"
                recommendation = "No action needed"

            predictions.append(
                {
                    "equipment": equipment.to_summary(),
                    "last_maintenance": last.isoformat() if last else None,
                    "days_since_maintenance": days_since,
                    "rentals_since_maintenance": rentals_since,
                    "risk_level": risk,
                    "recommendation": recommendation,
                }
            )

        order = {"high": 0, "medium": 1, "low": 2}
        predictions.sort(key=lambda p: (order[p["risk_level"]], -p["days_since_maintenance"]))
        return predictions

    def equipment_health(self, db: Session, equipment_id: int) -> Dict[str, Any]:
        """0-100 score from status, age, service count and damage history."""
        equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
        if not equipment:
            raise NotFound("Equipment not found")

        score = 100
        factors = []

        if equipment.status == "lost":
            score = 0
            factors.append("Equipment is marked as lost")
        elif equipment.status == "damaged":
            score -= 40
            factors.append("Equipment is currently damaged")
        elif equipment.status == "maintenance":
            score -= 15
            factors.append("Equipment is in maintenance")

        age = equipment.age or 0
        if age:
            score -= min(25, age * 5)
            factors.append(f"{age} year(s) old")

        maintenance_count = len(equipment.maintenance_history)
        if maintenance_count:
            score -= min(15, maintenance_count * 3)
            factors.append(f"{maintenance_count} maintenance record(s)")

        damage_count = (
            db.query(func.count(Booking.id))
            .filter(
                Booking.equipment_id == equipment.id,
                (Booking.condition_in == "poor") | Booking.damage_report.isnot(None),
            )
            .scalar()
            or 0
        )
        if damage_count:
            score -= min(30, damage_count * 10)
            factors.append(f"{damage_count} return(s) with damage")

        score = max(0, min(100, score))
        if score >= 80:
            rating = "good"
        elif score >= 60:
            rating = "fair"
        else:
            rating = "poor"

        return {
            "equipment": equipment.to_summary(),
            "health_score": score,
            "rating": rating,
            "factors": factors,
        }

    def smart_search(self, db: Session, query: str, limit: int = 20) -> Dict[str, Any]:
        """Rank active equipment by how many query terms it matches."""
        terms = [t for t in re.split(r"[^a-z0-9\-]+", query.lower()) if t]

        categories = set()
        for term in terms:
            for category, words in self.CATEGORY_SYNONYMS.items():
                if term in words:
                    categories.add(category)

        scored = []
        for equipment in db.query(Equipment).filter(Equipment.is_active.is_(True)).all():
            haystack = " ".join(
                filter(
                    None,
                    [
                        equipment.name,
                        equipment.brand,
                        equipment.model,
                        equipment.category,
                        equipment.description,
                        " ".join(equipment.tags or []),
                    ],
                )
            ).lower()

            score = sum(1 for term in terms if term in haystack)
            if equipment.category in categories:
                score += 2
            if score:
                scored.append((score, equipment))

        scored.sort(key=lambda item: (-item[0], item[1].name))

        return {
            "query": query,
            "terms": terms,
            "matched_categories": sorted(categories),
            "results": [
                {**e.to_summary(), "score": s} for s, e in scored[:limit]
            ],
        }


# Global service instance
_insight_service: Optional[InsightService] = None


def get_insight_service() -> InsightService:
    """Get the global insight service instance."""
    global _insight_service
    if _insight_service is None:
        _insight_service = InsightService()
    return _insight_service
