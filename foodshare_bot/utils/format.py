from typing import Optional

from foodshare_bot.models import Donation, DonationStatus
from foodshare_bot.services.projections import NearbyDonation, TrackingSnapshot

STATUS_LABELS = {
    DonationStatus.PENDING: "⏳ waiting for an NGO",
    DonationStatus.ACCEPTED: "🤝 accepted",
    DonationStatus.EN_ROUTE: "🚚 on the way",
    DonationStatus.PICKED_UP: "✅ picked up",
    DonationStatus.CANCELLED: "❌ cancelled",
}


def donation_card(d: Donation) -> str:
    lines = [
        f"#{d.id} {d.food_type} – {d.quantity:g} {d.unit}",
        f"Status: {STATUS_LABELS[d.status]}",
        f"Pickup: {d.location_text or '-'}",
        f"Expires: {d.expires_at.strftime('%d.%m %H:%M')} UTC",
    ]
    if d.acceptor_name:
        lines.append(f"NGO: {d.acceptor_name}")
    return "\n".join(lines)


def nearby_text(items: list[NearbyDonation]) -> str:
    if not items:
        return "No pending donations nearby right now."
    lines = ["Pending donations near you:"]
    for item in items:
        d = item.donation
        mark = " (expired)" if item.expired else ""
        lines.append(f"\n#{d.id} {d.food_type} – {d.quantity:g} {d.unit}{mark}\n  {item.distance_km:.1f} km, {d.location_text or '-'}")
    return "\n".join(lines)


def tracking_text(d: Donation, snapshot: Optional[TrackingSnapshot]) -> str:
    head = f"#{d.id} {d.food_type}: {STATUS_LABELS[d.status]}"
    if snapshot is None:
        return head
    eta = "arrived!" if snapshot.arrived else f"{snapshot.eta_minutes} min"
    return f"{head}\nDistance: {snapshot.distance_km:.2f} km\nETA: {eta}"
