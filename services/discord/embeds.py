from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import discord

if TYPE_CHECKING:
    from services.playtest.formatter import AnnouncementPayload
    from services.search.models import SearchResult


def info_embed(title: str, description: str | None = None) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.blurple(),
    )


def error_embed(title: str, description: str | None = None) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=discord.Color.red(),
    )


def payload_to_embed(
    payload: "AnnouncementPayload",
    *,
    footer_icon_url: Optional[str] = None,
) -> discord.Embed:
    embed = discord.Embed(
        title=payload.title,
        url=payload.url,
        description=payload.description,
        color=discord.Color.from_rgb(*payload.color),
    )
    embed.set_author(name=payload.author_name, icon_url=payload.author_icon_url)

    for entry in payload.fields:
        embed.add_field(name=entry.name, value=entry.value, inline=entry.inline)

    if payload.image_url:
        embed.set_image(url=payload.image_url)
    if payload.thumbnail_url:
        embed.set_thumbnail(url=payload.thumbnail_url)
    if payload.footer_text:
        embed.set_footer(
            text=payload.footer_text,
            icon_url=payload.footer_icon_url or footer_icon_url,
        )

    return embed


def search_result_embed(result: "SearchResult") -> discord.Embed:
    embed = discord.Embed(
        title=result.title,
        url=result.url,
        description=result.description,
        color=discord.Color.from_rgb(243, 128, 72),
    )
    if result.image_url:
        embed.set_thumbnail(url=result.image_url)
    return embed
