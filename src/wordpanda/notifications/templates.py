"""
Notification templates for the four scheduled dispatches.

All email HTML uses inline CSS for maximum email client compatibility.
Dark theme with panda amber (#F59E0B) and violet (#8B5CF6) accents.

Each template function returns a Message carrying the email HTML and text
bodies, a Telegram HTML body and a Google Chat body.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from html import escape

from wordpanda.dispatch.grouping import WordItem
from wordpanda.learning.action_links import ActionLinkSigner
from wordpanda.learning.wrong_words import WrongWordItem
from wordpanda.notifications.channels import Button, Message

BRAND = "옛설판다"
TAGLINE = "비즈니스 영어 마스터"

# Color constants
BG_DARK = "#09090B"
BG_CARD = "#18181B"
BORDER = "#27272A"
AMBER = "#F59E0B"
VIOLET = "#8B5CF6"
GREEN = "#10B981"
RED = "#F87171"
TEXT_PRIMARY = "#F4F4F5"
TEXT_SECONDARY = "#A1A1AA"
TEXT_MUTED = "#71717A"


def _base_layout(content: str, badge: str, badge_color: str = AMBER) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="ko">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{BRAND}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_DARK}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <div style="max-width: 480px; margin: 0 auto; padding: 24px 16px;">
        <div style="text-align: center; padding: 16px 0;">
            <div style="font-size: 36px; margin-bottom: 6px;">🐼</div>
            <h1 style="color: {TEXT_PRIMARY}; font-size: 20px; margin: 0 0 2px;">{BRAND}</h1>
            <p style="color: {TEXT_MUTED}; font-size: 12px; margin: 0;">{TAGLINE}</p>
        </div>
        <div style="text-align: center; margin-bottom: 16px;">
            <span style="display: inline-block; background-color: {badge_color}; color: #000000; padding: 5px 14px; border-radius: 20px; font-size: 12px; font-weight: 700;">{badge}</span>
        </div>
        {content}
        <div style="text-align: center; padding: 12px 0;">
            <p style="color: #52525B; font-size: 11px; margin: 0;">{BRAND} · 매일 성장하는 비즈니스 영어</p>
        </div>
    </div>
</body>
</html>"""


def _card(inner: str, border: str = BORDER) -> str:
    return (
        f'<div style="background-color: {BG_CARD}; border: 1px solid {border}; border-radius: 10px; '
        f'padding: 14px; margin-bottom: 12px;">{inner}</div>'
    )


def _button(url: str, label: str, color: str = VIOLET) -> str:
    """Render a CTA button."""
    return f"""\
<div style="text-align: center; margin: 12px 0;">
    <a href="{escape(url)}" target="_blank" style="display: inline-block; background-color: {color}; color: #FFFFFF; text-decoration: none; padding: 10px 28px; border-radius: 8px; font-size: 13px; font-weight: 600;">{label}</a>
</div>"""


def _word_table(words: Sequence[WordItem]) -> str:
    rows = "".join(
        f'<tr><td style="padding: 6px; color: {TEXT_MUTED}; font-size: 12px; text-align: center; width: 24px;">{i}</td>'
        f'<td style="padding: 6px 8px; color: {TEXT_PRIMARY}; font-size: 14px; font-weight: 600;">{escape(w.word)}</td>'
        f'<td style="padding: 6px 8px; font-size: 12px; color: {TEXT_SECONDARY};">{escape(w.meaning)}</td></tr>'
        for i, w in enumerate(words, start=1)
    )
    return f'<table style="width: 100%; border-collapse: collapse;">{rows}</table>'


def _progress_percent(day: int, total_days: int) -> int:
    return round(day / total_days * 100) if total_days > 0 else 0


def format_examples_html(text: str) -> str:
    """Turn ``[word] - meaning / 예문: / 해석:`` blocks into styled HTML."""
    body = escape(re.sub(r"━+", "", text))
    body = re.sub(
        r"\[(.+?)\]\s*-\s*(.+)",
        rf'<strong style="color: {AMBER};">\1</strong> <span style="color: {TEXT_SECONDARY};">- \2</span>',
        body,
    )
    body = re.sub(r"예문:\s*(.+)", r'<div style="margin: 4px 0;">📝 \1</div>', body)
    body = re.sub(r"해석:\s*(.+)", rf'<div style="color: {TEXT_MUTED}; font-size: 13px;">💬 \1</div>', body)
    return body.replace("\n\n", '<div style="height: 10px;"></div>').replace("\n", "<br>")


def format_review_html(text: str) -> str:
    """Turn ``[Heading]`` lines and ``- `` bullets into styled HTML."""
    body = escape(text)
    body = re.sub(r"\[(.+?)\]", rf'<h3 style="color: #A78BFA; font-size: 13px; margin: 10px 0 6px;">\1</h3>', body)
    body = body.replace("\n- ", "<br>• ")
    return body.replace("\n\n", '<div style="height: 6px;"></div>').replace("\n", "<br>")


def _generated_section(title: str, body_html: str, accent: str) -> str:
    if not body_html:
        return ""
    return _card(
        f'<h2 style="color: {accent}; font-size: 14px; margin: 0 0 8px;">{title}</h2>'
        f'<div style="color: #E2E8F0; font-size: 13px; line-height: 1.6;">{body_html}</div>',
        border=accent,
    )


# ---------------------------------------------------------------------------
# Morning words
# ---------------------------------------------------------------------------


def morning_words(
    name: str,
    day: int,
    total_days: int,
    words: Sequence[WordItem],
    examples_text: str,
    links: ActionLinkSigner,
) -> Message:
    """Today's word table plus generated business example sentences."""
    safe_name = escape(name)
    subject = f"🌅 Day {day} - 오늘의 비즈니스 영어 ({len(words)}개)"
    content = (
        _card(
            f'<p style="color: {TEXT_PRIMARY}; font-size: 15px; margin: 0 0 8px;">안녕하세요, <strong>{safe_name}</strong>님!</p>'
            f'<p style="color: {TEXT_SECONDARY}; font-size: 14px; margin: 0; line-height: 1.5;">'
            f'오늘의 비즈니스 영어 단어 <strong style="color: {AMBER};">{len(words)}개</strong>를 준비했습니다. '
            f"각 단어를 소리 내어 읽으며 뜻을 익혀보세요.</p>"
        )
        + _card(f'<h2 style="color: {TEXT_PRIMARY}; font-size: 15px; margin: 0 0 8px;">📚 오늘의 단어</h2>{_word_table(words)}')
        + _generated_section("🤖 AI 비즈니스 예문", format_examples_html(examples_text) if examples_text else "", AMBER)
        + _card(
            f'<h3 style="color: {TEXT_PRIMARY}; font-size: 14px; margin: 0 0 8px;">💡 학습 팁</h3>'
            f'<ul style="color: {TEXT_SECONDARY}; font-size: 13px; margin: 0; padding-left: 18px; line-height: 1.8;">'
            "<li>단어를 3번씩 소리 내어 읽어보세요</li>"
            "<li>각 단어로 간단한 문장을 만들어보세요</li>"
            "<li>잠시 후 테스트가 발송됩니다</li></ul>"
        )
        + _button(links.dashboard_login_url, "📊 내 학습 관리")
    )
    html_body = _base_layout(content, f"🌅 Day {day} / {total_days}")

    word_lines = "\n".join(f"{i}. {w.word} - {w.meaning}" for i, w in enumerate(words, start=1))
    text_body = (
        f"안녕하세요, {name}님!\n\n"
        f"Day {day} / {total_days} 오늘의 단어 {len(words)}개\n\n"
        f"{word_lines}\n\n"
        + (f"{examples_text}\n\n" if examples_text else "")
        + f"-- {BRAND}"
    )
    telegram_lines = "\n".join(
        f"{i}. <b>{escape(w.word)}</b> - {escape(w.meaning)}" for i, w in enumerate(words, start=1)
    )
    telegram_text = f"🌅 <b>Day {day} 오늘의 단어</b>\n\n{safe_name}님, 좋은 아침입니다!\n\n{telegram_lines}"
    chat_lines = "\n".join(f"{i}. *{w.word}* - {w.meaning}" for i, w in enumerate(words, start=1))
    chat_text = f"🌅 *Day {day} 오늘의 단어*\n\n{name}님, 좋은 아침입니다!\n\n{chat_lines}"
    return Message(
        subject=subject,
        html=html_body,
        text=text_body,
        telegram_text=telegram_text,
        chat_text=chat_text,
        buttons=(Button("📊 학습 관리", links.dashboard_login_url),),
        card_id="morning-words",
        card_subtitle="오늘의 단어",
    )


# ---------------------------------------------------------------------------
# Morning test
# ---------------------------------------------------------------------------


def morning_test(name: str, day: int, words: Sequence[WordItem], links: ActionLinkSigner) -> Message:
    """Meaning-to-word recall quiz. ``words`` arrive already shuffled."""
    safe_name = escape(name)
    subject = f"✏️ Day {day} 아침 테스트 - 영어 단어를 맞춰보세요!"
    items = "".join(
        _card(
            f'<p style="color: {TEXT_PRIMARY}; font-size: 15px; margin: 0 0 8px;">{i}. {escape(w.meaning)}</p>'
            f'<p style="color: {TEXT_MUTED}; font-size: 12px; margin: 0; text-align: right;">정답: '
            f'<span style="color: #3F3F46; background-color: #3F3F46; border-radius: 4px; padding: 1px 6px;">{escape(w.word)}</span></p>'
        )
        for i, w in enumerate(words, start=1)
    )
    content = (
        _card(
            f'<p style="color: {TEXT_PRIMARY}; font-size: 15px; margin: 0 0 8px;"><strong>{safe_name}</strong>님, 테스트 시간입니다!</p>'
            f'<p style="color: {TEXT_SECONDARY}; font-size: 14px; margin: 0; line-height: 1.5;">'
            "한국어 뜻을 보고 영어 단어를 떠올려보세요.<br>정답은 드래그하면 보입니다.</p>"
        )
        + items
        + _card(
            f'<p style="color: {TEXT_PRIMARY}; font-size: 15px; margin: 0 0 4px; text-align: center;">'
            f'총 <strong style="color: #3B82F6;">{len(words)}개</strong> 중 몇 개를 맞추셨나요?</p>'
            f'<p style="color: {TEXT_MUTED}; font-size: 13px; margin: 0; text-align: center;">점심에 복습 테스트가 다시 발송됩니다 💪</p>'
        )
    )
    html_body = _base_layout(content, f"✏️ Day {day} 아침 테스트", badge_color="#3B82F6")

    quiz_lines = "\n".join(f"{i}. {w.meaning}" for i, w in enumerate(words, start=1))
    answer_lines = ", ".join(w.word for w in words)
    text_body = f"{name}님, 테스트 시간입니다!\n\n{quiz_lines}\n\n정답: {answer_lines}\n\n-- {BRAND}"
    telegram_lines = "\n".join(
        f'{i}. {escape(w.meaning)} → <tg-spoiler>{escape(w.word)}</tg-spoiler>' for i, w in enumerate(words, start=1)
    )
    telegram_text = f"✏️ <b>Day {day} 아침 테스트</b>\n\n{safe_name}님, 뜻을 보고 단어를 떠올려보세요.\n\n{telegram_lines}"
    chat_text = f"✏️ *Day {day} 아침 테스트*\n\n{name}님, 뜻을 보고 단어를 떠올려보세요.\n\n{quiz_lines}"
    return Message(
        subject=subject,
        html=html_body,
        text=text_body,
        telegram_text=telegram_text,
        chat_text=chat_text,
        buttons=(Button("📊 학습 관리", links.dashboard_login_url),),
        card_id="morning-test",
        card_subtitle="아침 테스트",
    )


# ---------------------------------------------------------------------------
# Lunch test
# ---------------------------------------------------------------------------


def lunch_test(name: str, email: str, day: int, words: Sequence[WordItem], links: ActionLinkSigner) -> Message:
    """Shuffled words with a signed complete link and per-word relearn links."""
    safe_name = escape(name)
    subject = f"🍽️ Day {day} 점심 테스트"
    complete_url = links.complete_url(email, day)
    rows = "".join(
        f'<tr><td style="padding: 4px 6px; color: {TEXT_MUTED}; font-size: 11px; text-align: center;">{i}</td>'
        f'<td style="padding: 4px 6px; color: {TEXT_PRIMARY}; font-size: 13px; font-weight: 600;">{escape(w.word)}</td>'
        f'<td style="padding: 4px 6px; color: {BG_CARD}; background-color: {BG_CARD}; font-size: 11px;">{escape(w.meaning)}</td>'
        f'<td style="padding: 4px; text-align: center;"><a href="{escape(links.relearn_url(email, day, w.word, w.meaning))}" '
        f'style="color: {RED}; font-size: 10px; text-decoration: none; background-color: #7F1D1D; padding: 2px 6px; border-radius: 4px;">재학습</a></td></tr>'
        for i, w in enumerate(words, start=1)
    )
    content = (
        f'<p style="color: {TEXT_SECONDARY}; font-size: 12px; margin: 0 0 6px; text-align: center;">'
        f"{safe_name}님, 뜻을 떠올려보세요 · 정답은 드래그</p>"
        + _button(complete_url, "① 학습 완료", color=GREEN)
        + f'<p style="text-align: center; color: {TEXT_MUTED}; font-size: 11px; margin: 0 0 8px;">'
        "완료 후, 아래에서 재학습할 단어를 눌러주세요 ↓</p>"
        + f'<table style="width: 100%; border-collapse: collapse; background-color: #111111;">{rows}</table>'
        + _button(links.dashboard_login_url, "📊 내 학습 관리")
    )
    html_body = _base_layout(content, f"🍽️ Day {day} 점심 테스트", badge_color=GREEN)

    word_lines = "\n".join(f"{i}. {w.word}" for i, w in enumerate(words, start=1))
    text_body = (
        f"{name}님, Day {day} 점심 테스트입니다.\n\n{word_lines}\n\n"
        f"학습 완료: {complete_url}\n\n-- {BRAND}"
    )
    telegram_lines = "\n".join(
        f'{i}. <b>{escape(w.word)}</b> <tg-spoiler>{escape(w.meaning)}</tg-spoiler>' for i, w in enumerate(words, start=1)
    )
    telegram_text = f"🍽️ <b>Day {day} 점심 테스트</b>\n\n{safe_name}님, 뜻을 떠올려보세요.\n\n{telegram_lines}"
    chat_text = f"🍽️ *Day {day} 점심 테스트*\n\n{name}님, 뜻을 떠올려보세요.\n\n{word_lines}"
    return Message(
        subject=subject,
        html=html_body,
        text=text_body,
        telegram_text=telegram_text,
        chat_text=chat_text,
        buttons=(
            Button("✅ 학습 완료", complete_url),
            Button("📊 학습 관리", links.dashboard_login_url),
        ),
        card_id="lunch-test",
        card_subtitle="점심 테스트",
    )


# ---------------------------------------------------------------------------
# Evening review
# ---------------------------------------------------------------------------


def evening_review(
    name: str,
    email: str,
    day: int,
    total_days: int,
    completed_lunch: bool,
    wrong_words: Sequence[WrongWordItem],
    words: Sequence[WordItem],
    review_text: str,
    graduated: bool,
    links: ActionLinkSigner,
) -> Message:
    """Completion status, wrong-word notebook, full word list, progress and what comes next."""
    safe_name = escape(name)
    subject = f"🌙 Day {day} 저녁 복습 - 오늘의 학습 정리"
    percent = _progress_percent(day, total_days)
    complete_url = None if completed_lunch else links.complete_url(email, day)

    if completed_lunch:
        status = _card(
            f'<p style="color: {GREEN}; font-size: 14px; font-weight: 600; margin: 0; text-align: center;">✅ 오늘 학습 완료!</p>',
            border="#065F46",
        )
    else:
        status = _card(
            f'<p style="color: {AMBER}; font-size: 14px; font-weight: 600; margin: 0 0 4px; text-align: center;">⚠️ 아직 학습 완료를 안 하셨어요!</p>'
            f'<p style="color: {TEXT_SECONDARY}; font-size: 12px; margin: 0; text-align: center;">완료 버튼을 눌러야 다음 Day로 진행됩니다</p>'
            + _button(complete_url, "학습 완료하기", color=AMBER),
            border=AMBER,
        )

    if wrong_words:
        wrong_rows = "".join(
            f'<tr><td style="padding: 6px; color: {TEXT_MUTED}; font-size: 12px; text-align: center;">{i}</td>'
            f'<td style="padding: 6px 8px; color: {RED}; font-size: 13px; font-weight: 600;">{escape(w.word)}</td>'
            f'<td style="padding: 6px 8px; color: {TEXT_SECONDARY}; font-size: 12px;">{escape(w.meaning)}</td>'
            f'<td style="padding: 6px; color: {AMBER}; font-size: 11px; text-align: center;">{w.wrong_count}회</td></tr>'
            for i, w in enumerate(wrong_words, start=1)
        )
        wrong_section = _card(
            f'<h2 style="color: {RED}; font-size: 14px; margin: 0 0 8px;">❌ 오답 노트 ({len(wrong_words)}개)</h2>'
            f'<table style="width: 100%; border-collapse: collapse;">{wrong_rows}</table>',
            border="#DC2626",
        )
    else:
        wrong_section = _card(
            f'<p style="color: {GREEN}; font-size: 14px; font-weight: 600; margin: 0 0 2px; text-align: center;">🎉 오답이 없습니다!</p>'
            f'<p style="color: {TEXT_MUTED}; font-size: 12px; margin: 0; text-align: center;">모든 단어를 완벽하게 학습하셨네요</p>'
        )

    progress = _card(
        f'<p style="color: {TEXT_PRIMARY}; font-size: 13px; font-weight: 600; margin: 0 0 6px;">📊 전체 진도 '
        f'<span style="color: {VIOLET};">{percent}%</span></p>'
        f'<div style="background-color: {BORDER}; border-radius: 6px; height: 6px; overflow: hidden;">'
        f'<div style="background-color: {VIOLET}; height: 100%; width: {percent}%;"></div></div>'
        f'<p style="color: {TEXT_MUTED}; font-size: 11px; margin: 4px 0 0; text-align: center;">Day {day} / {total_days}</p>'
    )

    if graduated:
        next_step = _card(
            f'<p style="color: {AMBER}; font-size: 15px; font-weight: 700; margin: 0 0 2px; text-align: center;">🏆 축하합니다!</p>'
            f'<p style="color: {TEXT_SECONDARY}; font-size: 12px; margin: 0; text-align: center;">모든 학습 과정을 완료하셨습니다!</p>',
            border=AMBER,
        )
    elif day + 1 <= total_days:
        next_step = _card(
            f'<p style="color: {TEXT_PRIMARY}; font-size: 13px; margin: 0 0 2px; text-align: center;">'
            f'내일은 <strong style="color: {AMBER};">Day {day + 1}</strong>입니다</p>'
            f'<p style="color: {TEXT_MUTED}; font-size: 12px; margin: 0; text-align: center;">내일 아침에 만나요! 🌅</p>'
        )
    else:
        next_step = ""

    content = (
        _card(
            f'<p style="color: {TEXT_PRIMARY}; font-size: 14px; margin: 0 0 4px;">{safe_name}님, 수고하셨습니다! 🎊</p>'
            f'<p style="color: {TEXT_SECONDARY}; font-size: 13px; margin: 0;">Day {day} 저녁 복습입니다. 오늘 배운 내용을 정리해보세요.</p>'
        )
        + status
        + wrong_section
        + _card(f'<h2 style="color: {TEXT_PRIMARY}; font-size: 14px; margin: 0 0 8px;">📖 오늘의 전체 단어</h2>{_word_table(words)}')
        + _generated_section("🤖 AI 복습 자료", format_review_html(review_text) if review_text else "", VIOLET)
        + progress
        + next_step
        + _button(links.dashboard_login_url, "📊 내 학습 관리")
    )
    html_body = _base_layout(content, f"🌙 Day {day} 저녁 복습", badge_color=VIOLET)

    status_line = "✅ 학습 완료" if completed_lunch else "⚠️ 학습 미완료"
    wrong_line = f"❌ 복습 필요 단어: {len(wrong_words)}개" if wrong_words else "🎉 오답 없음!"
    progress_line = f"📚 전체 진도: Day {day}/{total_days} ({percent}%)"
    closing = "🏆 모든 학습 과정을 완료하셨습니다!" if graduated else ""
    text_body = (
        f"{name}님, Day {day} 저녁 복습입니다.\n\n"
        f"{status_line}\n{wrong_line}\n{progress_line}\n"
        + (f"{closing}\n" if closing else "")
        + f"\n-- {BRAND}"
    )
    telegram_text = (
        f"🌙 <b>Day {day} 저녁 복습</b>\n\n"
        f"{safe_name}님, 오늘 수고하셨습니다!\n\n"
        f"📊 <b>오늘의 결과:</b>\n{status_line}\n{wrong_line}\n\n"
        f"{progress_line}\n"
        + (f"{closing}\n" if closing else "")
        + f"\n📊 자세히 보기: {links.stats_url}"
    )
    chat_text = (
        f"🌙 *Day {day} 저녁 복습*\n\n"
        f"{name}님, 오늘 수고하셨습니다!\n\n"
        f"📊 *오늘의 결과:*\n{status_line}\n{wrong_line}\n\n"
        f"📚 전체 진도: Day {day}/{total_days}"
        + (f"\n{closing}" if closing else "")
    )

    buttons: tuple[Button, ...] = (Button("📊 학습 관리", links.dashboard_login_url),)
    if complete_url:
        buttons = (Button("✅ 학습 완료", complete_url), *buttons)
    return Message(
        subject=subject,
        html=html_body,
        text=text_body,
        telegram_text=telegram_text,
        chat_text=chat_text,
        buttons=buttons,
        card_id="evening-review",
        card_subtitle="저녁 복습",
    )
