EXAMPLE_OUTPUT = """{
  "filingId": "20029060",
  "filer": {
    "name": "Hon. David J. Taylor",
    "status": "Member",
    "stateDistrict": "OH02"
  },
  "transactions": [
    {
      "id": "",
      "owner": "",
      "asset": "Amazon.com, Inc. - Common Stock (AMZN) [ST]",
      "transactionType": "P",
      "date": "03/27/2025",
      "notificationDate": "03/31/2025",
      "amount": "$1,001 - $15,000",
      "filingStatus": "New",
      "certainty": 85
    }
  ]
}"""

REFLECTION_PROMPT = (
    "Reflect on the input from OCR and your output and make corrections, including updating the "
    "certainty score if your confidence increases. Output the corrected JSON only."
)


def build_extraction_prompt(ocr_text: str) -> str:
    """
    Builds the user prompt asking the model to transcribe one PTR into JSON.
    """
    return (
        "I pulled a Periodic Transaction Report (PTR) for a US House Representative and ran the PDF "
        "through an OCR parser, and this was the result:\n\n"
        f"```text\n{ocr_text}\n```\n\n"
        'The document header contains the filing ID, filer name, filer status ("Member" or "Candidate"), '
        "and the state/district (AA00, where AA is the state and 00 is the district number).\n\n"
        'The document\'s main content is a table of security transactions with the columns "ID", "Owner", '
        '"Asset", "Transaction Type", "Date", "Notification Date", "Amount", and "Cap. Gains > $200?". '
        '"Asset" can contain subfields, including "Filing Status", "Description", and "Comments". '
        "Extract these fields:\n\n"
        "* ID: Almost always blank, never set to null\n"
        "* Owner: Blank (owner is the filer), SP (spouse), DC (dependent child), JT (joint)\n"
        "* Asset: Might be multiple lines, might also have the transaction type code accidentally included\n"
        "* Transaction Type: P (purchase), S (sale), E (exchange); the P sometimes comes across as the "
        "Cyrillic Р because of OCR\n"
        "* Date: mm/dd/yyyy\n"
        "* Notification Date: mm/dd/yyyy\n"
        "* Amount: A range of dollars\n"
        "* Filing Status: New or Amended\n"
        "* Certainty: A score from 1 to 100 estimating confidence in the output.\n\n"
        "Convert any Cyrillic characters to the look-alike Latin character. Do not wrap the output in "
        "Markdown, just return the JSON. None of the values are nullable; use empty strings instead.\n\n"
        f"Example output:\n\n{EXAMPLE_OUTPUT}"
    )
