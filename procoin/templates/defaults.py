"""Bundled HTML email templates, keyed by provider.

Templates use ``string.Template`` placeholders. Every placeholder value is
HTML-escaped by the renderer before substitution, except ``warning_block``
which the renderer builds itself. Available placeholders:

    $amount $network $walletAddress $date $prettyDate $localcurrency
    $transaction_fee $cashapp_tag $transaction_id $senderName
    $recipient_name $brand $warning_block

A literal dollar sign must be written as ``$$``.
"""

_LAYOUT = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>$brand</title>
</head>
<body style="margin:0;padding:0;background:#f4f5f7;font-family:Arial,Helvetica,sans-serif;color:#1e2026;">
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="background:#f4f5f7;padding:24px 0;">
<tr><td align="center">
<table role="presentation" width="560" cellspacing="0" cellpadding="0" style="background:#ffffff;border-radius:8px;overflow:hidden;">
<tr><td style="background:{accent};padding:20px 28px;color:{accent_text};font-size:22px;font-weight:bold;">$brand</td></tr>
<tr><td style="padding:28px;">
<h1 style="font-size:20px;margin:0 0 12px;">{headline}</h1>
<p style="font-size:14px;line-height:20px;margin:0 0 20px;">{intro}</p>
<table role="presentation" width="100%" cellspacing="0" cellpadding="0" style="font-size:14px;">
{rows}
</table>
$warning_block
</td></tr>
<tr><td style="padding:16px 28px;background:#fafafa;font-size:12px;color:#707a8a;">
Sent $prettyDate. This is an automated message from $brand; please do not reply.
</td></tr>
</table>
</td></tr>
</table>
</body>
</html>
"""

_ROW = (
    '<tr><td style="padding:8px 0;color:#707a8a;">{label}</td>'
    '<td style="padding:8px 0;text-align:right;font-weight:bold;">${field}</td></tr>'
)

_CRYPTO_ROWS = [
    ("Amount", "amount"),
    ("Network", "network"),
    ("Wallet address", "walletAddress"),
    ("Transaction ID", "transaction_id"),
    ("Date", "date"),
]

_TRANSFER_ROWS = [
    ("Amount", "amount"),
    ("From", "senderName"),
    ("To", "recipient_name"),
    ("Fee", "transaction_fee"),
    ("Transaction ID", "transaction_id"),
    ("Date", "date"),
]


def _template(headline: str, intro: str, accent: str, accent_text: str, rows) -> str:
    body_rows = "\n".join(_ROW.format(label=label, field=field) for label, field in rows)
    return _LAYOUT.format(
        headline=headline,
        intro=intro,
        accent=accent,
        accent_text=accent_text,
        rows=body_rows,
    )


_CRYPTO_INTRO = "Your deposit of $amount has been confirmed and credited to your account."

TEMPLATE_DEFAULTS: dict[str, str] = {
    "binance": _template("Deposit Successful", _CRYPTO_INTRO, "#f0b90b", "#1e2026", _CRYPTO_ROWS),
    "coinbase": _template("You received crypto", _CRYPTO_INTRO, "#0052ff", "#ffffff", _CRYPTO_ROWS),
    "bybit": _template("Deposit Confirmed", _CRYPTO_INTRO, "#17181e", "#f7a600", _CRYPTO_ROWS),
    "okx": _template("Deposit Completed", _CRYPTO_INTRO, "#000000", "#ffffff", _CRYPTO_ROWS),
    "luno": _template("Funds received", _CRYPTO_INTRO, "#0d1c2e", "#ffffff", _CRYPTO_ROWS),
    "roqqu": _template("Deposit received", _CRYPTO_INTRO, "#4b2fd3", "#ffffff", _CRYPTO_ROWS),
    "cashapp": _template(
        "You received $amount",
        "Cash sent to $cashapp_tag is now in your balance.",
        "#00d632",
        "#ffffff",
        [
            ("Amount", "amount"),
            ("Cashtag", "cashapp_tag"),
            ("Local currency", "localcurrency"),
            ("Fee", "transaction_fee"),
            ("Transaction ID", "transaction_id"),
            ("Date", "date"),
        ],
    ),
    "paypal": _template(
        "You've got money",
        "$senderName sent you $amount.",
        "#003087",
        "#ffffff",
        _TRANSFER_ROWS,
    ),
    "zelle": _template(
        "Payment received",
        "$senderName sent $amount to $recipient_name with Zelle.",
        "#6d1ed4",
        "#ffffff",
        _TRANSFER_ROWS,
    ),
    "bitso": _template(
        "$recipient_name, you received a deposit",
        "$senderName sent you $amount.",
        "#1f2b3a",
        "#53e5a1",
        [
            ("Amount", "amount"),
            ("From", "senderName"),
            ("To", "recipient_name"),
            ("Network", "network"),
            ("Wallet address", "walletAddress"),
            ("Local currency", "localcurrency"),
            ("Date", "date"),
        ],
    ),
}

BRAND_NAMES: dict[str, str] = {
    "binance": "Binance",
    "coinbase": "Coinbase",
    "bybit": "Bybit",
    "okx": "OKX",
    "luno": "Luno",
    "roqqu": "Roqqu",
    "cashapp": "Cash App",
    "paypal": "PayPal",
    "zelle": "Zelle",
    "bitso": "Bitso",
}

WARNING_BLOCK = (
    '<p style="margin:20px 0 0;padding:12px;border-radius:4px;'
    'background:#fff4e5;color:#8a4b00;font-size:13px;">$warning</p>'
)
