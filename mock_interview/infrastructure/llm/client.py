"""
Vertex AI REST client for LLM interactions.
"""
import json
import logging
from typing import Optional, Dict, Any, Iterator, List, Sequence

import requests
import google.auth
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

_ROLE_MAP = {"assistant": "model", "model": "model", "user": "user"}


class VertexRestClient:
    """REST-based client for Vertex AI Gemini models."""

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self.model_resource = f"projects/{self.project}/locations/{self.location}/publishers/google/models/{self.model}"
        self._token = None
        self.timeout = timeout
        self.session = session or requests.Session()

    def _refresh_token(self):
        """Refresh the OAuth token for API calls."""
        if self.credentials_json:
            creds = service_account.Credentials.from_service_account_file(
                self.credentials_json,
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )
        else:
            creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])

        auth_req = google.auth.transport.requests.Request()
        creds.refresh(auth_req)
        self._token = creds.token

    def _ensure_token(self):
        """Ensure we have a valid token, refreshing if needed."""
        if not self._token:
            self._refresh_token()

    def _headers(self) -> Dict[str, str]:
        self._ensure_token()
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def build_body(contents: List[Dict[str, Any]],
                   system_prompt: Optional[str] = None,
                   temperature: float = 0.0,
                   max_output_tokens: int = MAX_OUTPUT_TOKENS) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }
        if system_prompt:
            body["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        return body

    @staticmethod
    def history_to_contents(history: Sequence[Dict[str, str]]) -> List[Dict[str, Any]]:
        """Convert ``[{"role": "user"|"assistant", "content": ...}]`` chat history to Gemini contents."""
        contents = []
        for message in history:
            role = _ROLE_MAP.get(message.get("role", "user"))
            text = message.get("content") or ""
            if role is None or not text:
                continue
            contents.append({"role": role, "parts": [{"text": text}]})
        return contents

    def generate_content(
        self,
        prompt_text: str,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Generate content using the Vertex AI REST API."""
        url = f"{self.base_url}/{self.model_resource}:generateContent"
        body = self.build_body(
            [{"role": "user", "parts": [{"text": prompt_text}]}],
            system_prompt=system_prompt,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

        resp = self.session.post(url, headers=self._headers(), json=body, timeout=self.timeout)
        if resp.status_code >= 400:
            raise RuntimeError(f"Vertex REST error {resp.status_code}: {resp.text}")

        return self._parse_response_text(resp.json())

    def stream_chat(
        self,
        system_prompt: str,
        history: Sequence[Dict[str, str]],
        temperature: float = 0.7,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
    ) -> Iterator[str]:
        """
        Stream an assistant reply for a chat history as text deltas.

        Uses ``streamGenerateContent`` with server-sent events.
        """
        url = f"{self.base_url}/{self.model_resource}:streamGenerateContent?alt=sse"
        contents = self.history_to_contents(history)
        if not contents:
            # Gemini requires at least one user turn
            contents = [{"role": "user", "parts": [{"text": "Please begin."}]}]
        body = self.build_body(contents, system_prompt=system_prompt,
                               temperature=temperature, max_output_tokens=max_output_tokens)

        with self.session.post(url, headers=self._headers(), json=body,
                               timeout=self.timeout, stream=True) as resp:
            if resp.status_code >= 400:
                raise RuntimeError(f"Vertex REST error {resp.status_code}: {resp.text}")
            for line in resp.iter_lines(decode_unicode=True):
                text = self._parse_sse_line(line)
                if text:
                    yield text

    def _parse_sse_line(self, line) -> Optional[str]:
        if not line or not line.startswith("data:"):
            return None
        payload = line[len("data:"):].strip()
        try:
            chunk = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning("Skipping undecodable stream event: %s", payload[:200])
            return None
        cands = chunk.get("candidates") or []
        if not cands:
            return None
        parts = (cands[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Parse response JSON to extract text content.
        Tries Vertex schema first, then falls back to alternatives.
        """
        cands = resp_json.get("candidates", [])
        if cands:
            content = cands[0].get("content", {})
            parts = content.get("parts", [])
            if parts and isinstance(parts, list):
                for p in parts:
                    if isinstance(p, dict) and isinstance(p.get("text"), str):
                        return p["text"]
            if isinstance(content, dict) and isinstance(content.get("text"), str):
                return content["text"]

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        # Last resort: return JSON for inspection
        return json.dumps(resp_json, separators=(",", ":"))

    def generate_json(self, prompt: str, temperature: float = 0.0,
                      system_prompt: Optional[str] = None) -> Dict[str, Any]:
        """
        Generate JSON response from LLM with tolerant parsing.
        Automatically appends instruction to respond with JSON only.
        """
        prompt_json = prompt.strip() + "\n\nRespond ONLY with minified JSON."
        logger.debug("Sending JSON prompt to LLM...")

        try:
            text = self.generate_content(prompt_json, temperature=temperature,
                                         system_prompt=system_prompt)
        except Exception as e:
            logger.error("LLM request failed: %s", e)
            raise

        logger.debug("Raw LLM output: %s", repr(text))
        return extract_json_object(text)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from LLM text, tolerating surrounding prose or code fences.

    Raises:
        ValueError: If no JSON object can be recovered
    """
    try:
        parsed = json.loads(text)
        if isinstance(parsed, dict):
            return parsed
    except (TypeError, json.JSONDecodeError) as e:
        logger.warning("json.loads failed: %s", e)

    start = text.find("{") if isinstance(text, str) else -1
    end = text.rfind("}") if isinstance(text, str) else -1
    if start != -1 and end != -1 and end > start:
        try:
            parsed = json.loads(text[start:end + 1])
            logger.debug("Parsed JSON from substring successfully")
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError as e:
            logger.warning("Substring parse also failed: %s", e)

    raise ValueError(f"LLM did not return valid JSON: {text}")
