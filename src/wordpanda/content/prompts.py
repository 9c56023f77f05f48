"""Prompt text for the generated sections."""

from __future__ import annotations

from collections.abc import Sequence

from wordpanda.dispatch.grouping import WordItem


def _numbered(words: Sequence[WordItem]) -> str:
    return "\n".join(f"{i}. {w.word} ({w.meaning})" for i, w in enumerate(words, start=1))


def business_examples_prompt(words: Sequence[WordItem]) -> str:
    return f"""당신은 비즈니스 영어 전문가입니다.

다음 영어 단어들로 비즈니스 상황에서 사용할 수 있는 실용적인 예문을 각각 만들어주세요.

단어 목록:
{_numbered(words)}

각 단어마다 다음 형식으로 작성:
[단어] - 뜻
예문: (영문)
해석: (한글)

회의, 이메일, 협상 등 실제 비즈니스 맥락에서 바로 쓸 수 있는 자연스러운 예문으로 작성해주세요."""


def evening_review_prompt(words: Sequence[WordItem]) -> str:
    return f"""당신은 영어 학습 코치입니다.

오늘 학습한 단어들의 복습 자료를 만들어주세요:

{_numbered(words)}

다음 형식으로 작성:

[오늘의 핵심 정리]
- 헷갈리기 쉬운 단어 3개와 구분 팁
- 발음 주의 단어 (있다면)

[보너스: 오늘의 비즈니스 숙어]
위 단어 중 하나를 포함한 실용적인 비즈니스 숙어 1개
- 숙어와 뜻
- 예문
- 사용 상황

[내일 예고]
내일 학습을 위한 동기부여 한마디"""
