import click

from poolscope.cli import cli
from poolscope.cli.utils import CliContext, build_analyzer, echo_json, handle_errors


@cli.command()
@click.argument("pool")
@click.option(
    "--word-range",
    type=click.IntRange(min=0),
    default=None,
    help="Bitmap words to scan on each side of the current tick. Defaults to the configured value.",
)
@click.pass_obj
@handle_errors
def distribution(context: CliContext, pool: str, word_range: int | None) -> None:
    """
    Show the liquidity available at each initialized tick around the current price.
    """

    analyzer = build_analyzer(context)
    echo_json(analyzer.get_tick_liquidity_distribution(pool, word_range))


@cli.command()
@click.argument("pool")
@click.option(
    "--threshold",
    type=click.FloatRange(min=0),
    default=None,
    help="Relative liquidity change between adjacent ticks that counts as a cliff, e.g. 0.2",
)
@click.option("--word-range", type=click.IntRange(min=0), default=None)
@click.pass_obj
@handle_errors
def cliffs(
    context: CliContext,
    pool: str,
    threshold: float | None,
    word_range: int | None,
) -> None:
    """
    Find abrupt changes in available liquidity between adjacent ticks.
    """

    analyzer = build_analyzer(context)
    distribution = analyzer.get_tick_liquidity_distribution(pool, word_range)
    echo_json(
        {
            "pool": distribution.pool.address,
            "current_tick": distribution.pool.tick,
            "complete": distribution.complete,
            "cliffs": analyzer.detect_liquidity_cliffs(
                sorted_infos=distribution.ticks,
                starting_liquidity=distribution.pool.liquidity,
                threshold_pct=threshold,
            ),
        }
    )


@cli.command()
@click.argument("pool")
@click.option("--seconds", type=click.IntRange(min=1), default=None, help="Averaging window")
@click.pass_obj
@handle_errors
def twap(context: CliContext, pool: str, seconds: int | None) -> None:
    """
    Show the time-weighted average price over the window.
    """

    echo_json(build_analyzer(context).get_twap(pool, seconds))


@cli.command()
@click.argument("pool")
@click.option("--seconds", type=click.IntRange(min=1), default=None, help="Averaging window")
@click.pass_obj
@handle_errors
def twal(context: CliContext, pool: str, seconds: int | None) -> None:
    """
    Show the time-weighted (harmonic mean) liquidity over the window.
    """

    echo_json(build_analyzer(context).get_twal(pool, seconds))


@cli.command()
@click.argument("pool")
@click.pass_obj
@handle_errors
def ratios(context: CliContext, pool: str) -> None:
    """
    Show the current token price ratios.
    """

    echo_json(build_analyzer(context).get_token_ratios(pool))
