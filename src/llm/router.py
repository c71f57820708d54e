"""
src/llm/router.py

LLM translation + free-text answers for the sales order chatbot.

- build_descriptor(): LLM translator -> FilterDescriptor JSON (validated at the boundary)
- answer_general(): LLM answer for questions that are not about sales orders
- answer_with_context(): LLM answer grounded on a bounded sample of matching sales orders

This file uses:
- AWS Bedrock (Claude 3 / 3.5) via boto3 bedrock-runtime

All LLM calls are expected to return plain text; JSON outputs are parsed with a robust parser.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3
import yaml
from botocore.config import Config

from src.engine.query_plan import FilterDescriptor, validate_descriptor

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an unusable response."""


class LLMRouter:
    """
    LLMRouter is the main class responsible for sending questions to the appropriate LLM prompts and parsing their responses.
    It loads the prompts from a YAML file, and provides methods to:
        - build_descriptor(): translate the user question into a FilterDescriptor
        - answer_general(): answer a general (non sales order) question
        - answer_with_context(): answer a sales order question the engine cannot aggregate, using real records as context

    Each method uses the _generate_text() method to call Bedrock with the right prompt and parameters.
    The translator output is parsed with _safe_parse_json(), which can handle JSON wrapped in extra text or
    markdown code fences. If it cannot be parsed, the descriptor defaults to intent "general" so the question
    is still answered through the free-text path.
    The class also stores debug_info for each step, which can be useful for inspecting LLM outputs and troubleshooting.
    """

    def __init__(
        self,
        *,
        model_id: str,
        region: str,
        profile: Optional[str] = None,
        timeout_seconds: int = 60,
        prompts_path: Optional[str] = None,
    ) -> None:
        """
        Loads prompts from a YAML file. If no path is provided, it defaults to "prompts.yaml" next to this module.
        The Bedrock client is created lazily on first use.
        """
        base_dir = Path(__file__).resolve().parent
        self._prompts_path = Path(prompts_path) if prompts_path else (base_dir / "prompts.yaml")
        self.prompts = self._load_prompts(self._prompts_path)

        self.model_id = model_id
        self.region = region
        self.profile = profile
        self.timeout_seconds = timeout_seconds
        self.temperature = 0.0
        self.max_tokens = 800
        self._client = None

        # Useful to inspect what the LLM returned at each step, without needing to add print statements or use a debugger.
        self.debug_info: Dict[str, Any] = {}

    @classmethod
    def from_settings(cls, cfg) -> "LLMRouter":
        return cls(
            model_id=cfg.bedrock_model_id,
            region=cfg.aws_region,
            profile=cfg.aws_profile,
            timeout_seconds=cfg.llm_timeout_seconds,
        )

    @staticmethod
    def _load_prompts(path: Path) -> dict:
        """
        Reads the prompts from a YAML file and returns them as a dictionary.
        The file must contain a mapping at the top level with keys like
        "translator_system", "translator_user_template", "general_system", "context_system", "context_user_template".
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError("prompts.yaml must contain a mapping at the top level.")
        return data

    def build_descriptor(self, question: str) -> FilterDescriptor:
        """
        LLM translator -> FilterDescriptor.
        Any failure (backend error, non-JSON output, invalid fields) ends in a descriptor with intent "general".
        """
        system = self.prompts.get("translator_system")
        user_tmpl = self.prompts.get("translator_user_template")
        if not system or not user_tmpl:
            return FilterDescriptor()

        user = user_tmpl.format(question=question)

        try:
            txt = self._generate_text(system=system, user=user, max_tokens=self.max_tokens)
        except Exception as e:
            logger.exception("Translator call failed; defaulting to general intent")
            self.debug_info["translator_error"] = str(e)
            return FilterDescriptor()

        self.debug_info["translator_raw"] = txt

        data = self._safe_parse_json(txt)
        self.debug_info["translator_parsed"] = data

        descriptor = validate_descriptor(data)
        logger.info("LLM build_descriptor debug: %s", self.debug_info)
        return descriptor

    def answer_general(self, question: str) -> str:
        """
        Free-text answer for "general" questions. The question is passed verbatim.
        """
        system = self.prompts.get("general_system", "You are a helpful ERP assistant.")
        txt = self._generate_text(system=system, user=question, max_tokens=self.max_tokens)
        self.debug_info["general_raw"] = txt
        return txt.strip()

    def answer_with_context(self, question: str, records: List[dict]) -> str:
        """
        Free-text answer grounded on the given records (already bounded by the engine).
        """
        system = self.prompts.get("context_system", "You are an ERP assistant. Answer based only on ERP data provided below.")
        user_tmpl = self.prompts.get("context_user_template", "Question: {question}\nERP Data: {records}")
        user = user_tmpl.format(
            question=question,
            records=json.dumps(records, ensure_ascii=False, default=str),
        )
        txt = self._generate_text(system=system, user=user, max_tokens=self.max_tokens)
        self.debug_info["context_raw"] = txt
        self.debug_info["context_records"] = len(records)
        return txt.strip()

    def _generate_text(self, *, system: str, user: str, max_tokens: int) -> str:
        """
        Single place where the backend is chosen; only Bedrock is wired.
        """
        return self._bedrock_claude_messages(
            system=system,
            user=user,
            max_tokens=max_tokens,
            temperature=self.temperature,
        )

    def _bedrock_client(self):
        if self._client is None:
            session = boto3.Session(profile_name=self.profile) if self.profile else boto3.Session()
            self._client = session.client(
                "bedrock-runtime",
                region_name=self.region,
                config=Config(
                    connect_timeout=10,
                    read_timeout=self.timeout_seconds,
                    retries={"max_attempts": 2, "mode": "standard"},
                ),
            )
        return self._client

    def _bedrock_claude_messages(self, *, system: str, user: str, max_tokens: int, temperature: float) -> str:
        """
        Claude 3 / 3.5 on Bedrock via Messages API style payload.
        Works for model IDs like:
        - anthropic.claude-3-5-sonnet-20240620-v1:0
        - anthropic.claude-3-haiku-20240307-v1:0
        """
        payload = {
            "anthropic_version": "bedrock-2023-05-31",
            "max_tokens": int(max_tokens),
            "temperature": float(temperature),
            "system": system,
            "messages": [
                {"role": "user", "content": user}
            ],
        }
        try:
            resp = self._bedrock_client().invoke_model(
                modelId=self.model_id,
                body=json.dumps(payload).encode("utf-8"),
            )
            data = json.loads(resp["body"].read())
        except Exception as e:
            raise LLMError(f"LLM call error: {e}") from e

        # Claude response: {"content":[{"type":"text","text":"..."}], ...}
        content = data.get("content", [])
        if isinstance(content, list) and content:
            first = content[0]
            if isinstance(first, dict) and "text" in first:
                return str(first["text"])
        raise LLMError(f"Unexpected Bedrock response shape: {json.dumps(data)[:200]}")

    # ----------------------------
    # JSON parsing helpers
    # ----------------------------

    @staticmethod
    def _safe_parse_json(text: str) -> dict:
        """
        Extracts the first JSON object from an LLM response and parses it.
        Handles cases where the model wraps JSON with extra text or markdown
        code fences like ```json ... ```.
        Returns an empty dict if parsing fails.
        """
        if not text:
            return {}

        text = text.strip()

        text = re.sub(r"^```json\s*", "", text, flags=re.IGNORECASE)
        text = re.sub(r"^```\s*", "", text)
        text = re.sub(r"\s*```$", "", text)

        # Best case: pure JSON
        try:
            data = json.loads(text)
            return data if isinstance(data, dict) else {}
        except ValueError:
            pass

        # Try to extract the first {...} block
        m = re.search(r"\{.*\}", text, flags=re.DOTALL)
        if not m:
            return {}

        try:
            data = json.loads(m.group(0))
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
