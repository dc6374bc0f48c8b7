import pandas as pd

from foodshare_bot.services.donations import DonationService

COLUMNS = [
    "ID",
    "Food",
    "Quantity",
    "Unit",
    "Status",
    "Accepted by",
    "Created (UTC)",
    "Expires (UTC)",
    "Address",
]


async def export_donor_history(service: DonationService, donor_id: int, file_path: str) -> str:
    """Write every donation of *donor_id* to an Excel file, newest first."""
    donations = await service.list_mine(donor_id)
    rows = [
        {
            "ID": d.id,
            "Food": d.food_type,
            "Quantity": d.quantity,
            "Unit": d.unit,
            "Status": d.status.value,
            "Accepted by": d.acceptor_name or "-",
            "Created (UTC)": d.created_at,
            "Expires (UTC)": d.expires_at,
            "Address": d.location_text,
        }
        for d in donations
    ]
    pd.DataFrame(rows, columns=COLUMNS).to_excel(file_path, index=False)
    return file_path


async def donor_summary(service: DonationService, donor_id: int) -> str:
    """Short text summary: how many donations ended in each status."""
    donations = await service.list_mine(donor_id)
    if not donations:
        return "No donations yet."
    df = pd.DataFrame({"status": [d.status.value for d in donations], "quantity": [d.quantity for d in donations]})
    counts = df.groupby("status")["quantity"].agg(["count", "sum"])
    lines = ["Your donations:"]
    for status, row in counts.iterrows():
        lines.append(f"  {status}: {int(row['count'])} ({row['sum']:g} total)")
    return "\n".join(lines)
