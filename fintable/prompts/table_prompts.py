# Prompts and response schema for the two model calls of the pipeline.
#   1) PAGE_TABLE_EXTRACTION_PROMPT: one page image -> <table> markup
#   2) STRUCTURING_PROMPT_TEMPLATE: all fragments -> schema-constrained JSON
#
# The page markers ("<!-- Page N -->") written by the structuring service are
# what the model uses to fill pageNumber, so keep PAGE_MARKER and the prompt in sync.

from google.genai import types

PAGE_TABLE_EXTRACTION_PROMPT = (
    "From the provided image of a document page, extract ALL tables into clean, "
    "semantic HTML `<table>` elements. Preserve the original text and structure, "
    "including headers and rows. If no tables are found on the page, return an empty string."
)

PAGE_MARKER = "<!-- Page {page_number} -->"

STRUCTURING_PROMPT_TEMPLATE = """Please analyze the following HTML tables extracted from a multi-page financial document. Structure the information into a single JSON object according to the provided schema. Infer the overall document metadata (currency, reporting period) from the content. It is critical that the 'pageNumber' for each table in the output corresponds to the source page number indicated in the HTML comments (e.g., <!-- Page 4 -->).

{html_input}"""


def build_structuring_prompt(html_input: str) -> str:
    return STRUCTURING_PROMPT_TEMPLATE.format(html_input=html_input)


STRUCTURED_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "tables": types.Schema(
            type=types.Type.ARRAY,
            description="List of all tables parsed from the provided HTML.",
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "title": types.Schema(
                        type=types.Type.STRING,
                        description="The title or a brief summary of the table's content.",
                    ),
                    "columns": types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(type=types.Type.STRING),
                        description="The column headers of the table.",
                    ),
                    "rawData": types.Schema(
                        type=types.Type.ARRAY,
                        items=types.Schema(
                            type=types.Type.ARRAY,
                            items=types.Schema(type=types.Type.STRING),
                        ),
                        description="The table data as a 2D array of strings, row by row.",
                    ),
                    "pageNumber": types.Schema(
                        type=types.Type.NUMBER,
                        description="The original page number this table was extracted from.",
                    ),
                },
                required=["title", "columns", "rawData", "pageNumber"],
            ),
        ),
        "metadata": types.Schema(
            type=types.Type.OBJECT,
            properties={
                "currency": types.Schema(
                    type=types.Type.STRING,
                    description=(
                        "The main currency mentioned in the tables (e.g., 'NIS', 'USD', "
                        "'אלפי ש\"ח'). Default to 'לא צוין' if not found."
                    ),
                ),
                "reportingPeriod": types.Schema(
                    type=types.Type.STRING,
                    description=(
                        "The main reporting period of the document (e.g., 'ליום 31 בדצמבר 2022'). "
                        "Default to 'לא צוין' if not found."
                    ),
                ),
            },
            required=["currency", "reportingPeriod"],
        ),
    },
    required=["tables", "metadata"],
)
