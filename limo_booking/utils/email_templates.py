from html import escape


def _rows(pairs):
    return "".join(
        f"<tr><td style=\"padding:6px 12px;color:#666\">{escape(label)}</td>"
        f"<td style=\"padding:6px 12px\"><strong>{escape(str(value))}</strong></td></tr>"
        for label, value in pairs
        if value not in (None, "")
    )


def _layout(title, intro, pairs):
    return f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #333;">
        <h2 style="color:#1a1a2e">{escape(title)}</h2>
        <p>{escape(intro)}</p>
        <table style="border-collapse:collapse">{_rows(pairs)}</table>
      </body>
    </html>
    """


def booking_confirmation(data: dict):
    subject = f"Booking Confirmed - #{data['booking_id']}"
    html = _layout(
        "Your booking is confirmed",
        f"Hi {data.get('customer_name', '')}, thank you for your payment. Your ride is confirmed.",
        [
            ("Booking", f"#{data['booking_id']}"),
            ("Vehicle", data.get("vehicle_name")),
            ("Date", data.get("start_date")),
            ("Pickup time", data.get("start_time")),
            ("Pickup", data.get("pickup_location")),
            ("Drop-off", data.get("dropoff_location")),
            ("Total paid", data.get("total_amount")),
        ],
    )
    return subject, html


def admin_notification(data: dict):
    subject = f"New paid booking #{data['booking_id']} - {data.get('customer_name', '')}"
    html = _layout(
        "New paid booking",
        "A booking has been paid and confirmed.",
        [
            ("Booking", f"#{data['booking_id']}"),
            ("Customer", data.get("customer_name")),
            ("Email", data.get("customer_email")),
            ("Phone", data.get("customer_phone")),
            ("Vehicle", data.get("vehicle_name")),
            ("Service", data.get("service_type")),
            ("Date", data.get("start_date")),
            ("Pickup time", data.get("start_time")),
            ("Pickup", data.get("pickup_location")),
            ("Drop-off", data.get("dropoff_location")),
            ("Duration (hours)", data.get("duration_hours")),
            ("Total", data.get("total_amount")),
            ("Notes", data.get("notes")),
        ],
    )
    return subject, html


TEMPLATES = {
    "booking_confirmation": booking_confirmation,
    "admin_notification": admin_notification,
}


def render(template: str, data: dict):
    try:
        builder = TEMPLATES[template]
    except KeyError:
        raise ValueError(f"Unknown email template: {template}") from None
    return builder(data)
