# certverify/services/documents.py
from __future__ import annotations

import io
from typing import Dict, Optional

from jinja2 import Environment, BaseLoader, select_autoescape
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from certverify.schemas.certificate import CertificateRecord
from certverify.services.qr import build_qr_payload, qr_data_uri, qr_png, verify_url

_env = Environment(
    loader=BaseLoader(),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
)

CERTIFICATE_TEMPLATE = """
<!doctype html>
<html>
  <head><meta charset="utf-8"><title>{{ cert.id }}</title></head>
  <body style="font-family: Arial, Helvetica, sans-serif; padding: 36px;">
    <div style="text-align:center;">
      <h3>{{ cert.issuing_authority }}</h3>
      <h1>Certificate of Completion</h1>
      <p>This certifies that <b>{{ cert.recipient_name }}</b>
         has successfully completed <b>{{ cert.program }}</b>.</p>
      <p>Issued on {{ issued }}{% if valid_until %}, valid until {{ valid_until }}{% endif %}.</p>
      {% if cert.status == "revoked" %}<p style="color:#b00"><b>REVOKED</b></p>{% endif %}
      {% if cert.status == "draft" %}<p style="color:#888"><b>DRAFT</b></p>{% endif %}
      <img src="{{ qr_data_uri }}" style="height:120px">
      <div style="font-size: 12px; margin-top:8px">
        Certificate ID: <b>{{ cert.id }}</b><br>
        Verify at: {{ verify_url }}<br>
        <span style="color:#888">{{ cert.content_hash }}</span>
      </div>
    </div>
  </body>
</html>
""".strip()


def _fmt(d) -> str:
    return d.strftime("%B %d, %Y") if d else ""


def _context(cert: CertificateRecord, base_url: Optional[str]) -> Dict:
    return dict(
        cert=cert,
        issued=_fmt(cert.issue_date),
        valid_until=_fmt(cert.valid_until),
        verify_url=verify_url(cert.id, base_url),
        qr_payload=build_qr_payload(cert.id),
    )


def render_certificate_html(cert: CertificateRecord, base_url: Optional[str] = None) -> str:
    ctx = _context(cert, base_url)
    ctx["qr_data_uri"] = qr_data_uri(ctx["qr_payload"])
    return _env.from_string(CERTIFICATE_TEMPLATE).render(**ctx)


def render_certificate_pdf(cert: CertificateRecord, base_url: Optional[str] = None) -> bytes:
    ctx = _context(cert, base_url)
    buf = io.BytesIO()
    size = landscape(A4)
    width, height = size
    c = canvas.Canvas(buf, pagesize=size)
    c.setTitle(cert.id)

    c.setFont("Helvetica", 14)
    c.drawCentredString(width / 2, height - 70, cert.issuing_authority)
    c.setFont("Helvetica-Bold", 30)
    c.drawCentredString(width / 2, height - 130, "Certificate of Completion")
    c.setFont("Helvetica", 14)
    c.drawCentredString(width / 2, height - 180, "This certifies that")
    c.setFont("Helvetica-Bold", 22)
    c.drawCentredString(width / 2, height - 215, cert.recipient_name)
    c.setFont("Helvetica", 14)
    c.drawCentredString(width / 2, height - 250, "has successfully completed")
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(width / 2, height - 280, cert.program)

    c.setFont("Helvetica", 12)
    line = f"Issued on {ctx['issued']}"
    if ctx["valid_until"]:
        line += f", valid until {ctx['valid_until']}"
    c.drawCentredString(width / 2, height - 320, line)
    if cert.status != "issued":
        c.setFont("Helvetica-Bold", 16)
        c.drawCentredString(width / 2, height - 350, cert.status.upper())

    qr = ImageReader(io.BytesIO(qr_png(ctx["qr_payload"])))
    c.drawImage(qr, 50, 40, width=110, height=110)
    c.setFont("Helvetica", 9)
    c.drawString(170, 110, f"Certificate ID: {cert.id}")
    c.drawString(170, 95, f"Verify at: {ctx['verify_url']}")
    c.drawString(170, 80, cert.content_hash)

    c.showPage()
    c.save()
    return buf.getvalue()
