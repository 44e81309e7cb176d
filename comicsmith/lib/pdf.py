# comicsmith/lib/pdf.py
import io
from typing import List

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from comicsmith.logger import get_logger

log = get_logger(__name__)

def make_pdf(pages: List[bytes]) -> bytes:
    """Bind composed page images into an A4 PDF, one image per sheet, aspect preserved and centred."""
    log.info(f"Combining {len(pages)} pages into PDF")
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    w, h = A4
    for data in pages:
        img = Image.open(io.BytesIO(data))
        img_ratio = img.width / img.height
        if w / h > img_ratio:
            ih = h
            iw = ih * img_ratio
        else:
            iw = w
            ih = iw / img_ratio
        x = (w - iw) / 2
        y = (h - ih) / 2
        c.drawImage(ImageReader(img), x, y, iw, ih)
        c.showPage()
    c.save()
    return buf.getvalue()
