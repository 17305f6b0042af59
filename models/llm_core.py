"""
models/llm_core.py
------------------
Lightweight local LLM interface used for query analysis (keyword extraction).
Backed by a HuggingFace text-generation pipeline.
"""

from dataclasses import dataclass
from functools import lru_cache

from transformers import AutoModelForCausalLM, AutoTokenizer, pipeline


# ──────────────────────────────────────────────────────────────────────────────
# ⚙️ Configuration Dataclass
# ──────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class LLMConfig:
    model_name: str = "TinyLlama/TinyLlama-1.1B-Chat-v1.0"
    backend: str = "transformers"  # only transformers is wired up
    device_map: str = "auto"
    torch_dtype: str = "auto"
    max_new_tokens: int = 64
    temperature: float = 0.2
    do_sample: bool = False


# ──────────────────────────────────────────────────────────────────────────────
# 🧠 Runtime Pipeline Loader
# ──────────────────────────────────────────────────────────────────────────────
@lru_cache(maxsize=2)
def get_pipeline(config: LLMConfig):
    """Return a text-generation pipeline based on backend + config."""
    if config.backend != "transformers":
        raise ValueError(f"Unknown backend: {config.backend}")

    tokenizer = AutoTokenizer.from_pretrained(config.model_name)
    model = AutoModelForCausalLM.from_pretrained(
        config.model_name,
        device_map=config.device_map,
        torch_dtype=config.torch_dtype,
    )
    return pipeline(
        "text-generation",
        model=model,
        tokenizer=tokenizer,
        max_new_tokens=config.max_new_tokens,
        temperature=config.temperature,
        do_sample=config.do_sample,
    )


def format_prompt(prompt_dict: dict) -> str:
    """Flatten a {system, user} prompt into the plain-text chat layout."""
    sys = prompt_dict.get("system", "")
    usr = prompt_dict.get("user", "")
    sections = [s for s in [sys, f"User: {usr}"] if s]
    return "\n\n".join(sections) + "\n\nAssistant:"


# ──────────────────────────────────────────────────────────────────────────────
# 🧠 Functional Wrapper
# ──────────────────────────────────────────────────────────────────────────────
def generate_response(prompt_dict: dict, config: LLMConfig = LLMConfig()) -> str:
    """Stateless generation shortcut (no conversation memory)."""
    pipe = get_pipeline(config)
    out = pipe(format_prompt(prompt_dict))[0]["generated_text"]
    return out.split("Assistant:")[-1].strip()
