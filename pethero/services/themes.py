# pethero/services/themes.py
import random
from typing import Optional

# 빌드 시점에 고정되는 히어로 테마 목록. 선택된 문자열이 photos 문서의 theme 필드에 저장됩니다.
HERO_THEMES = (
    'superhero with cape flying through the sky',
    'medieval knight in shining armor',
    'space astronaut exploring distant planets',
    'fantasy wizard casting magical spells',
    'pirate captain sailing the seven seas',
    'ninja warrior in stealth mode',
    'cowboy sheriff in the wild west',
    'ancient gladiator in the colosseum',
    'steampunk inventor with mechanical gadgets',
    'cyber warrior in a futuristic world',
    'royal king or queen with crown and robe',
    'detective with magnifying glass and coat',
    'firefighter hero saving the day',
    'arctic explorer in winter gear',
    'jungle adventurer with safari equipment',
)


def select_theme(rng: Optional[random.Random] = None) -> str:
    """테마 목록에서 균등 확률로 하나를 고릅니다. 테스트에서는 시드를 고정한 rng를 넘깁니다."""
    return (rng or random).choice(HERO_THEMES)
