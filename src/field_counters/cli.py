"""CLI entry point for the field value counter engine."""

from __future__ import annotations

import click

from .core.errors import FieldCounterError


def _parse_maps(maps: tuple[str, ...]) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in maps:
        field_name, sep, counter_name = item.partition("=")
        if not sep:
            raise click.BadParameter(
                f"{item!r} is not FIELD=COUNTER", param_hint="--map",
            )
        pairs.append((field_name, counter_name))
    return pairs


def _redis_client(redis_url: str):
    import redis

    return redis.Redis.from_url(redis_url, decode_responses=True)


@click.group()
def main() -> None:
    """Field value counters."""


@main.command()
@click.argument("source", type=click.File("r"))
@click.option("--map", "maps", multiple=True, required=True, help="FIELD=COUNTER mapping (repeatable)")
@click.option("--top", default=None, type=int, help="Show only the N most common values")
def count(source, maps: tuple[str, ...], top: int | None) -> None:
    """Count field values in a JSON-lines file and print the tallies."""
    from .counting.handler import FieldValueCounterHandler
    from .metrics.memory_store import InMemoryFieldValueCounterStore

    store = InMemoryFieldValueCounterStore()
    try:
        handler = FieldValueCounterHandler(store, _parse_maps(maps))
    except FieldCounterError as exc:
        raise click.UsageError(str(exc)) from exc

    lines = (line for line in source if line.strip())
    report = handler.handle_many(lines)

    for mapping in handler.mappings:
        counter = store.find_one(mapping.counter_name)
        click.echo(f"\n{mapping.counter_name}  ({mapping.field_path})")
        click.echo("-" * 50)
        if counter is None:
            click.echo("  (no values)")
            continue
        for value, n in counter.most_common(top):
            click.echo(f"  {value:<38s} {n:>10d}")

    click.echo(
        f"\n{report.records} record(s), {report.increments} increment(s), "
        f"{report.undecodable} undecodable, {len(report.failures)} mapping failure(s)"
    )
    for failure in report.failures:
        click.echo(f"  {failure.mapping.counter_name}: {failure.error}", err=True)


@main.command()
@click.option("--config", default="configs/field_counters.toml", help="Config file path")
@click.option("--redis", "use_redis", is_flag=True, help="Use the Redis bus and counter store")
def run(config: str, use_redis: bool) -> None:
    """Run the counting tap on the Redis bus. Memory mode is refused."""
    import asyncio

    from .main import run as run_app

    overrides: dict = {}
    if use_redis:
        overrides["mode"] = "redis"
    try:
        asyncio.run(run_app(config_path=config, overrides=overrides))
    except FieldCounterError as exc:
        raise click.ClickException(str(exc)) from exc


# ---------------------------------------------------------------------------
# Counter inspection (Redis store)
# ---------------------------------------------------------------------------
# Counter inspection (Redis store)
# ---------------------------------------------------------------------------


def _load_store_settings(ctx: click.Context, redis_url: str | None):
    """Settings for the inspection commands; ``--redis-url`` wins over the config."""
    from .core.config import load_settings

    overrides = {"redis_url": redis_url} if redis_url else {}
    try:
        return load_settings(config_path=ctx.obj["config"], overrides=overrides)
    except FieldCounterError as exc:
        raise click.ClickException(str(exc)) from exc


def _counter_store(ctx: click.Context, redis_url: str | None):
    from .metrics.redis_store import RedisFieldValueCounterStore

    settings = _load_store_settings(ctx, redis_url)
    prefix = ctx.obj["prefix"] or settings.store.counter_prefix
    return RedisFieldValueCounterStore(_redis_client(settings.redis_url), prefix=prefix)


def _mapping_repository(ctx: click.Context, redis_url: str | None):
    from .storage.definitions import CounterMappingRepository

    settings = _load_store_settings(ctx, redis_url)
    prefix = ctx.obj["prefix"] or settings.store.mapping_prefix
    return CounterMappingRepository(_redis_client(settings.redis_url), prefix=prefix)


_config_option = click.option(
    "--config", default="configs/field_counters.toml",
    help="Config file supplying the Redis URL and key prefixes",
)
_redis_url_option = click.option(
    "--redis-url", default=None, help="Redis URL (overrides the config)",
)


@main.group()
@_config_option
@click.option("--prefix", default=None, help="Counter key prefix (overrides store.counter_prefix)")
@click.pass_context
def counters(ctx: click.Context, config: str, prefix: str | None) -> None:
    """Inspect counters in the Redis store."""
    ctx.obj = {"config": config, "prefix": prefix}


@counters.command("list")
@_redis_url_option
@click.pass_context
def counters_list(ctx: click.Context, redis_url: str | None) -> None:
    """List counter names."""
    for name in _counter_store(ctx, redis_url).list_names():
        click.echo(name)


@counters.command("show")
@click.argument("name")
@click.option("--top", default=None, type=int, help="Show only the N most common values")
@_redis_url_option
@click.pass_context
def counters_show(ctx: click.Context, name: str, top: int | None, redis_url: str | None) -> None:
    """Show the value counts of one counter."""
    counter = _counter_store(ctx, redis_url).find_one(name)
    if counter is None:
        click.echo(f"Counter {name} not found.")
        return
    for value, n in counter.most_common(top):
        click.echo(f"  {value:<38s} {n:>10d}")
    click.echo(f"\n  total {counter.total}")


@counters.command("reset")
@click.argument("name")
@_redis_url_option
@click.confirmation_option(prompt="Reset this counter?")
@click.pass_context
def counters_reset(ctx: click.Context, name: str, redis_url: str | None) -> None:
    """Zero a counter."""
    _counter_store(ctx, redis_url).reset(name)
    click.echo(f"Counter {name} reset.")


# ---------------------------------------------------------------------------
# Persisted mapping definitions
# ---------------------------------------------------------------------------


@main.group()
@_config_option
@click.option("--prefix", default=None, help="Mapping key prefix (overrides store.mapping_prefix)")
@click.pass_context
def mappings(ctx: click.Context, config: str, prefix: str | None) -> None:
    """Manage stored field-to-counter mappings."""
    ctx.obj = {"config": config, "prefix": prefix}


@mappings.command("add")
@click.argument("counter")
@click.argument("field")
@_redis_url_option
@click.pass_context
def mappings_add(ctx: click.Context, counter: str, field: str, redis_url: str | None) -> None:
    """Store a mapping FIELD -> COUNTER."""
    from .storage.definitions import CounterMappingDefinition

    definition = CounterMappingDefinition(name=counter, field_name=field)
    try:
        definition.to_mapping()
        _mapping_repository(ctx, redis_url).store(definition)
    except FieldCounterError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Stored {field} -> {counter}")


@mappings.command("list")
@_redis_url_option
@click.pass_context
def mappings_list(ctx: click.Context, redis_url: str | None) -> None:
    """List stored mappings."""
    for d in _mapping_repository(ctx, redis_url).find_all():
        click.echo(f"  {d.field_name:<30s} -> {d.name}")


@mappings.command("remove")
@click.argument("counter")
@_redis_url_option
@click.pass_context
def mappings_remove(ctx: click.Context, counter: str, redis_url: str | None) -> None:
    """Remove the stored mapping for COUNTER."""
    _mapping_repository(ctx, redis_url).delete(counter)
    click.echo(f"Removed mapping for {counter}")


if __name__ == "__main__":
    main()
