import fitz  # PyMuPDF

from disclosures.ingestion.ocr import PdfTextExtractor


def make_pdf(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def test_reads_text_layer_of_every_page(blob_store):
    """Test pages with embedded text are read without OCR."""
    uri = blob_store.put("blob://congress/house/2025/1.pdf", make_pdf("Filing ID #20032062", "FILER INFORMATION"))

    text = PdfTextExtractor(blob_store).extract_text(uri)

    assert "Filing ID #20032062" in text
    assert text.index("Filing ID") < text.index("FILER INFORMATION")


def test_scanned_pages_go_through_ocr(blob_store, mocker):
    """Test a page without a text layer is handed to Tesseract."""
    uri = blob_store.put("blob://congress/house/2025/2.pdf", make_pdf(""))
    ocr = mocker.patch.object(fitz.Page, "get_textpage_ocr", autospec=True)
    get_text = mocker.patch.object(fitz.Page, "get_text", autospec=True, side_effect=["", "scanned words"])

    text = PdfTextExtractor(blob_store, ocr_language="eng", ocr_dpi=150).extract_text(uri)

    assert text == "scanned words"
    assert ocr.call_args.kwargs == {"language": "eng", "dpi": 150, "full": True}
    assert get_text.call_args.kwargs["textpage"] is ocr.return_value
