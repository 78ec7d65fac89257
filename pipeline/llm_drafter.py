"""
OpenAI-compatible drafting assistant for supplier follow-up emails.

Three round-trips are supported:
  - draft_email      supplier + open lines (most urgent first) -> email text
  - refine_email     current draft + instruction             -> revised text
  - extract_updates  open lines + instruction (+ screenshot)  -> proposed
                     (order, item, new date) changes + a short explanation

Works with any OpenAI-compatible backend:
  - Ollama (local):  LLM_BASE_URL=http://localhost:11434/v1                     LLM_API_KEY=ollama
  - OpenAI:          LLM_BASE_URL=https://api.openai.com/v1                     LLM_API_KEY=sk-...
  - Gemini:          LLM_BASE_URL=https://generativelanguage.googleapis.com/v1beta/openai/

Drafts never contain the order table itself.  The model writes an
{{ORDER_TABLE}} placeholder and fill_order_table() substitutes a plain-text
table built from the order lines, so quantities and dates are never
re-typed by the model.
"""
import json
import logging
import re
from typing import Iterable, Optional

from models.order_line import OrderLine
from models.result import OrderUpdate, UpdateExtraction
from .classifier import sort_by_urgency

logger = logging.getLogger(__name__)

TABLE_PLACEHOLDER = "{{ORDER_TABLE}}"
MAX_ATTEMPTS = 3

UPDATE_FALLBACK_MESSAGE = "The update request could not be processed. Please try again."
UPDATE_DONE_MESSAGE = "Done."


class DraftingError(RuntimeError):
    """The text-generation backend failed after all retries."""


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_PROMPT_DRAFT = """You are a logistics and supply-chain assistant. Write a clear, professional email to the supplier "{supplier_name}" asking for the status of their open purchase order lines and a confirmation of delivery dates.

Open order lines (reference only, most urgent first; do NOT draw a table yourself):
{lines_json}

Rules:
- Plain text, no Markdown. Separate paragraphs with blank lines.
- Start with a subject line in the form "Subject: ...".
- Keep the introduction short and professional.
- Where the order table belongs, write exactly this placeholder on its own line: {placeholder}
- Close with a clear request to send updated delivery dates for the lines in the table as soon as possible.
- Additional instructions from the buyer: {instructions}

Return only the email text."""


_PROMPT_REFINE = """Revise the email draft below according to the user's instruction.
Keep the placeholder {placeholder} exactly as it is; do not remove or change it.

Current draft:
---
{draft}
---

Instruction: "{instruction}"

Return only the revised email text."""


_PROMPT_UPDATES = """You are a logistics operations assistant. Read the user's message (and the attached image, if any) and find delivery-date changes for the open order lines listed below.

Open order lines (order/item - material (description)):
{lines_text}

Rules:
- Match lines by order number (SA Belgesi) and item number. The order number is mandatory; the item number may be an empty string.
- Convert every date to DD.MM.YYYY (for example 15.05.2025).
- Only return matches you are certain about.
- Also write a short message telling the user what you changed.

Return ONLY a JSON object with this structure:
{{
  "responseMessage": "short explanation for the user",
  "updates": [
    {{"saBelgesi": "450012345", "sasKalemNo": "10", "newDate": "15.05.2025"}}
  ]
}}"""


# ---------------------------------------------------------------------------
# Order table rendering
# ---------------------------------------------------------------------------

_TABLE_COLUMNS = (
    ("Order", lambda l: l.po_number),
    ("Item", lambda l: l.item_number),
    ("Material", lambda l: l.material),
    ("Description", lambda l: l.description),
    ("Open qty", lambda l: f"{l.open_qty:g} {l.unit}"),
    ("Delivery", lambda l: l.effective_date or "-"),
    ("Days", lambda l: str(l.days_remaining)),
)


def render_order_table(lines: Iterable[OrderLine]) -> str:
    """Fixed-width plain-text table of the given lines, most urgent first."""
    rows = [[getter(line) for _, getter in _TABLE_COLUMNS] for line in sort_by_urgency(lines)]
    headers = [name for name, _ in _TABLE_COLUMNS]
    widths = [max(len(h), *(len(r[i]) for r in rows)) if rows else len(h) for i, h in enumerate(headers)]
    fmt = "  ".join(f"{{:<{w}}}" for w in widths)
    out = [fmt.format(*headers), fmt.format(*("-" * w for w in widths))]
    out.extend(fmt.format(*row) for row in rows)
    return "\n".join(line.rstrip() for line in out)


def fill_order_table(draft: str, lines: Iterable[OrderLine]) -> str:
    """Replace the table placeholder; append the table when the model dropped it."""
    table = render_order_table(lines)
    if TABLE_PLACEHOLDER in draft:
        return draft.replace(TABLE_PLACEHOLDER, table)
    logger.debug("Draft has no table placeholder — appending table")
    return f"{draft.rstrip()}\n\n{table}\n"


def _lines_context(lines: Iterable[OrderLine]) -> str:
    return json.dumps([
        {
            "PO": line.po_number,
            "ItemNo": line.item_number,
            "Material": line.description,
            "Qty": f"{line.open_qty:g} {line.unit}",
            "Date": line.effective_date or "not specified",
            "DaysRemaining": line.days_remaining,
        }
        for line in lines
    ], ensure_ascii=False, indent=2)


def _lines_reference(lines: Iterable[OrderLine]) -> str:
    return "\n".join(
        f"{l.po_number}{'/' + l.item_number if l.item_number else ''} - {l.material} ({l.description})"
        for l in lines
    )


# ---------------------------------------------------------------------------
# EmailDrafter
# ---------------------------------------------------------------------------

class EmailDrafter:
    """
    Thin client around an OpenAI-compatible chat completion endpoint.

    draft_email / refine_email raise DraftingError when the backend keeps
    failing; extract_updates never raises and degrades to an empty update
    list with an explanatory message.
    """

    def __init__(
        self,
        model: str = "llama3.2",
        base_url: str = "http://localhost:11434/v1",
        api_key: str = "ollama",
        temperature: float = 0.3,
    ):
        self.model       = model
        self.base_url    = base_url
        self.api_key     = api_key
        self.temperature = temperature
        self._client     = None

    def _get_client(self):
        """Lazily initialise the OpenAI client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(base_url=self.base_url, api_key=self.api_key)
        return self._client

    def _complete(self, content, temperature: Optional[float] = None) -> str:
        client = self._get_client()
        last_error: Optional[Exception] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            logger.debug("LLM request attempt %d (model=%s)", attempt, self.model)
            try:
                response = client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": content}],
                    temperature=self.temperature if temperature is None else temperature,
                )
                text = (response.choices[0].message.content or "").strip()
                if text:
                    return text
                logger.warning("LLM attempt %d returned an empty response", attempt)
            except Exception as e:
                logger.warning("LLM attempt %d failed: %s", attempt, e)
                last_error = e
        raise DraftingError(
            f"No response from {self.model} after {MAX_ATTEMPTS} attempts"
        ) from last_error

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def draft_email(
        self,
        supplier_name: str,
        lines: Iterable[OrderLine],
        instructions: str = "",
    ) -> str:
        """Draft a follow-up email; lines are handed over most urgent first."""
        ordered = sort_by_urgency(lines)
        prompt = _PROMPT_DRAFT.format(
            supplier_name=supplier_name,
            lines_json=_lines_context(ordered),
            placeholder=TABLE_PLACEHOLDER,
            instructions=instructions.strip() or "none",
        )
        logger.info("Drafting email for %s (%d lines)", supplier_name, len(ordered))
        return self._complete(prompt)

    def refine_email(self, draft: str, instruction: str) -> str:
        prompt = _PROMPT_REFINE.format(
            placeholder=TABLE_PLACEHOLDER, draft=draft, instruction=instruction,
        )
        return self._complete(prompt)

    def extract_updates(
        self,
        lines: Iterable[OrderLine],
        instruction: str,
        image_base64: Optional[str] = None,
    ) -> UpdateExtraction:
        """
        Ask the model for date changes described in text or a screenshot.
        The result is only a proposal; nothing is applied here.
        """
        prompt = _PROMPT_UPDATES.format(lines_text=_lines_reference(lines))
        content: list[dict] = [{"type": "text", "text": prompt}]
        if image_base64:
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{image_base64}"},
            })
        content.append({"type": "text", "text": f"User input: {instruction}"})

        try:
            raw = self._complete(content, temperature=0.0)
        except DraftingError as e:
            logger.error("Update extraction failed: %s", e)
            return UpdateExtraction(message=UPDATE_FALLBACK_MESSAGE)
        return parse_update_response(raw)

    def check_connection(self) -> dict:
        """Verify the endpoint is reachable and the configured model is available."""
        try:
            client = self._get_client()
            available = [m.id for m in client.models.list().data]
            return {
                "ok": True,
                "base_url": self.base_url,
                "model_available": any(self.model in m for m in available),
                "available_models": available,
            }
        except Exception as e:
            return {
                "ok": False,
                "base_url": self.base_url,
                "error": str(e),
                "model_available": False,
            }


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _load_json_object(raw: str) -> Optional[dict]:
    """Find and decode the outermost JSON object, repairing trailing commas."""
    raw = re.sub(r"^```(?:json)?\s*", "", raw.strip(), flags=re.IGNORECASE)
    raw = re.sub(r"\s*```$", "", raw)

    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start == -1 or end == 0:
        logger.warning("No JSON object found in LLM response")
        return None

    json_str = raw[start:end]
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning("JSON decode error: %s", e)
        json_str = re.sub(r",\s*([}\]])", r"\1", json_str)
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError:
            logger.error("Could not repair JSON from LLM response")
            return None
    return data if isinstance(data, dict) else None


def parse_update_response(raw: str) -> UpdateExtraction:
    """
    Validate the model's update proposal.  Entries without an order number
    or date are skipped; anything unreadable yields an empty proposal.
    """
    data = _load_json_object(raw)
    if data is None:
        return UpdateExtraction(message=UPDATE_FALLBACK_MESSAGE)

    entries = data.get("updates") or []
    if not isinstance(entries, list):
        logger.warning("LLM returned updates as %s, expected a list", type(entries).__name__)
        return UpdateExtraction(message=UPDATE_FALLBACK_MESSAGE)

    updates: list[OrderUpdate] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        po_number = str(entry.get("saBelgesi") or entry.get("po_number") or "").strip()
        new_date = str(entry.get("newDate") or entry.get("new_date") or "").strip()
        if not po_number or not new_date:
            logger.debug("Skipping incomplete update entry: %s", entry)
            continue
        item_number = str(entry.get("sasKalemNo") or entry.get("item_number") or "").strip()
        updates.append(OrderUpdate(po_number=po_number, item_number=item_number, new_date=new_date))

    message = str(data.get("responseMessage") or data.get("message") or UPDATE_DONE_MESSAGE)
    return UpdateExtraction(message=message, updates=updates)
