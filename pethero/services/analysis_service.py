# pethero/services/analysis_service.py
"""
Gemini 모델 체인을 이용해 히어로 변환 설명(analysis)을 생성합니다.

모델 호출 정책(후보 모델 순서, 쿨다운, 최종 재시도 횟수)은 AnalysisPolicy 데이터로 표현되고,
resolve_analysis는 주입받은 클라이언트와 sleep 함수만 사용하므로 네트워크 없이 테스트할 수 있습니다.
이 단계의 실패는 작업을 중단시키지 않으며, 모든 경로는 비어 있지 않은 문자열로 끝납니다.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from pethero.core.config import PipelineSettings
from pethero.services.gemini_service import is_rate_limit_error
from pethero.services.image_service import NormalizedImage


@dataclass(frozen=True)
class AnalysisModel:
    name: str
    multimodal: bool

    @classmethod
    def from_name(cls, name: str) -> "AnalysisModel":
        # 이미지 입력을 받는 Gemini 모델은 이름에 'image'가 포함됩니다.
        return cls(name=name, multimodal='image' in name)


@dataclass(frozen=True)
class AnalysisPolicy:
    models: Tuple[AnalysisModel, ...]
    cooldown_seconds: float = 20.0
    max_final_retries: int = 1
    final_retry_model: str = 'gemini-1.5-flash'

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "AnalysisPolicy":
        models = tuple(AnalysisModel.from_name(name) for name in settings.analysis_models)
        text_models = [model.name for model in models if not model.multimodal]
        return cls(
            models=models,
            cooldown_seconds=settings.rate_limit_cooldown_seconds,
            final_retry_model=text_models[-1] if text_models else cls.final_retry_model,
        )


class AnalysisSource(Enum):
    MODEL = "model"
    FINAL_RETRY = "final_retry"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class AnalysisResult:
    text: str
    source: AnalysisSource
    model: Optional[str] = None


def build_analysis_prompt(theme: str, multimodal: bool) -> str:
    prompt = f"Describe this image for {theme} transformation. Keep all faces same, add only costumes."
    if multimodal:
        return prompt
    return (
        f"{prompt}\n\nNote: Unable to analyze the actual image, but create a creative description for a "
        f"{theme} transformation. IMPORTANT: Emphasize preserving original faces and features while adding "
        f"heroic elements around them."
    )


def build_final_retry_prompt(theme: str) -> str:
    return f"Create a heroic {theme} description for a pet transformation. Be creative and vivid!"


def resolve_analysis(client,
                     policy: AnalysisPolicy,
                     image: Optional[NormalizedImage],
                     theme: str,
                     sleep: Callable[[float], None] = time.sleep) -> AnalysisResult:
    """
    후보 모델을 순서대로 호출해 첫 번째로 얻은 텍스트를 반환합니다.

    - 요청 한도 초과 오류가 마지막 후보에서 발생하면 cooldown_seconds 만큼 기다린 뒤
      텍스트 전용 모델로 단순 프롬프트를 최대 max_final_retries 번 다시 시도합니다.
    - 그 외 오류는 지연 없이 다음 후보로 넘어갑니다.
    - 모두 실패하면 테마별 placeholder 설명을 반환합니다.

    :param client: generate_content(model, text, image=None) -> ModelResponse 를 제공하는 객체
    """
    last_index = len(policy.models) - 1
    for index, model in enumerate(policy.models):
        try:
            logging.info(f"Trying analysis model: {model.name}")
            prompt = build_analysis_prompt(theme, model.multimodal)
            response = client.generate_content(model.name, prompt, image if model.multimodal else None)
            if response.text:
                logging.info(f"Analysis succeeded with model: {model.name}")
                return AnalysisResult(text=response.text, source=AnalysisSource.MODEL, model=model.name)
            logging.warning(f"Model {model.name} returned no text")
        except Exception as e:
            logging.warning(f"Model {model.name} failed: {e}")
            if not is_rate_limit_error(e):
                continue

            logging.info(f"Rate limited on {model.name}")
            if index == last_index:
                retried = _final_retry(client, policy, theme, sleep)
                if retried is not None:
                    return retried

    logging.warning("All analysis models failed, using creative placeholder")
    return AnalysisResult(text=generate_creative_placeholder(theme), source=AnalysisSource.PLACEHOLDER)


def _final_retry(client, policy: AnalysisPolicy, theme: str, sleep: Callable[[float], None]) -> Optional[AnalysisResult]:
    logging.info(f"Waiting {policy.cooldown_seconds} seconds before final retry...")
    sleep(policy.cooldown_seconds)

    for attempt in range(policy.max_final_retries):
        try:
            response = client.generate_content(policy.final_retry_model, build_final_retry_prompt(theme))
            if response.text:
                logging.info(f"Final retry successful with {policy.final_retry_model}")
                return AnalysisResult(text=response.text, source=AnalysisSource.FINAL_RETRY,
                                      model=policy.final_retry_model)
        except Exception as e:
            logging.error(f"Final retry {attempt + 1}/{policy.max_final_retries} failed: {e}")
    return None


CREATIVE_DESCRIPTIONS = {
    'superhero with cape flying through the sky': (
        'This magnificent pet transforms into a caped crusader soaring through cotton candy clouds. '
        'Their flowing cape ripples in the wind as they patrol the skies with determined eyes and a heroic stance, '
        'ready to save the day with their incredible powers. Any human companions stand proudly below, '
        'cheering on their heroic pet friend.'
    ),
    'medieval knight in shining armor': (
        'Behold this noble pet warrior, adorned in gleaming silver armor that reflects the golden sunlight. '
        'Their brave stance and loyal expression speak of countless battles fought for honor and justice, '
        'with a mighty sword at their side. Their human companions serve as loyal squires, '
        'supporting their valiant pet knight.'
    ),
    'space astronaut exploring distant planets': (
        'This cosmic pet explorer ventures boldly into the star-filled void, their sleek space suit gleaming '
        'against the backdrop of alien worlds. Curiosity and wonder shine in their eyes as they discover new frontiers.'
    ),
    'fantasy wizard casting magical spells': (
        'A mystical pet mage channels ancient powers, their robes shimmering with arcane energy. '
        'Sparkling magic swirls around them as they weave spells of wonder, their wise eyes holding secrets '
        'of the magical realm.'
    ),
    'pirate captain sailing the seven seas': (
        'This swashbuckling pet captain commands their vessel with fearless determination, tricorn hat askew '
        'and coat billowing in the ocean breeze. Adventure calls from every horizon as they navigate treacherous waters.'
    ),
    'ninja warrior in stealth mode': (
        'Silent as shadow, this pet ninja moves with deadly grace through moonlit rooftops. Their dark attire '
        'blends with the night as they master the ancient arts of stealth and precision.'
    ),
    'cowboy sheriff in the wild west': (
        'This frontier pet lawkeeper stands tall in dusty boots and weathered hat, badge gleaming in the desert sun. '
        'With steely resolve, they maintain peace in the untamed wilderness.'
    ),
    'ancient gladiator in the colosseum': (
        'A warrior pet stands proud in the arena, battle-tested armor bearing the marks of victory. '
        'Their courageous spirit echoes through the ancient stones as crowds cheer their legendary prowess.'
    ),
    'steampunk inventor with mechanical gadgets': (
        'This ingenious pet tinkerer surrounds themselves with brass gears and steam-powered contraptions. '
        'Their workshop buzzes with Victorian-era innovation and creative mechanical marvels.'
    ),
    'cyber warrior in a futuristic world': (
        'Enhanced with digital augmentations, this pet guardian protects the digital realm. Neon lights pulse '
        'across their high-tech armor as they navigate the cyber landscape with enhanced abilities.'
    ),
}


def generate_creative_placeholder(theme: str) -> str:
    """모델 호출 없이 만드는 결정적 설명. 정확히 일치하는 테마가 없으면 템플릿 문장을 사용합니다."""
    description = CREATIVE_DESCRIPTIONS.get(theme)
    if description:
        return description
    return (
        f"This amazing pet embodies the spirit of {theme}, keeping their original adorable face and features "
        f"while gaining heroic armor and accessories that transform them into a powerful hero. Their expressive "
        f"eyes and recognizable features remain unchanged, now enhanced by epic {theme} elements. Any humans in "
        f"the scene keep their original faces and appearances while gaining complementary heroic costumes as "
        f"loyal companions supporting their beloved pet hero."
    )


def generate_offline_analysis(theme: str) -> str:
    """Gemini가 설정되지 않은 환경에서 사용하는 짧은 설명"""
    return (
        f"This adorable pet would make an amazing {theme}! With their expressive eyes and natural charisma, "
        f"they're perfect for this heroic transformation."
    )
