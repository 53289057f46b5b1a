# expense_calculator/cli.py
import logging
import os
from datetime import date

import click
from dotenv import load_dotenv

from expense_calculator.backends import BackendError
from expense_calculator.charts import format_amount
from expense_calculator.config import load_config
from expense_calculator.core import aggregator
from expense_calculator.forms import ExpenseForm, FormError
from expense_calculator.loaders import get_loader
from expense_calculator.outputs import get_output
from expense_calculator.store import StoreBusyError, open_store


def _store(ctx):
    obj = ctx.obj
    if 'store' not in obj:
        try:
            obj['store'] = open_store(obj['config'], owner_id=obj['user'])
        except (BackendError, ValueError) as e:
            raise click.ClickException(str(e))
    return obj['store']


def _draft(cfg, form):
    try:
        return form.validate(
            categories=cfg['categories'],
            restrict_categories=cfg.get('restrict_categories', True),
        )
    except FormError as e:
        raise click.ClickException(str(e))


def _echo_expense(exp, symbol):
    click.echo(
        f"{exp.id:>14}  {exp.date.isoformat()}  {format_amount(exp.amount, symbol):>12}  "
        f"{exp.category:<18} {exp.description}"
    )


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults to $EXPENSE_CALC_CONFIG or ./config.yaml)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file holding backend URL, keys and session secret'
)
@click.option(
    '--user', 'user',
    default=None,
    help='Owner identifier to scope expenses to (default: all expenses)'
)
@click.pass_context
def main(ctx, config_path, env_file, user):
    """
    Record expenses, browse them by category, and see totals and trends
    from the command line or the web dashboard.
    """
    if env_file:
        load_dotenv(env_file)
    logging.basicConfig(level=os.getenv("EXPENSE_CALC_LOG_LEVEL", "INFO").upper())
    try:
        cfg = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(str(e))
    ctx.obj = {'config': cfg, 'config_path': config_path, 'user': user}


@main.command()
@click.option('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
@click.option('--port', default=8000, type=int, help='Port to bind (default: 8000)')
@click.pass_context
def serve(ctx, host, port):
    """Run the web dashboard."""
    import uvicorn
    from webapp.main import create_app

    click.echo(f"Expense Calculator running at http://{host}:{port}")
    uvicorn.run(create_app(ctx.obj['config']), host=host, port=port)


@main.command('list')
@click.option('--category', default='all', help="Only show this category ('all' for every one)")
@click.pass_context
def list_expenses(ctx, category):
    """List expenses, newest first."""
    cfg = ctx.obj['config']
    rows = _store(ctx).filtered(category)
    if not rows:
        click.echo("No expenses found")
        return
    for exp in rows:
        _echo_expense(exp, cfg['currency_symbol'])
    total = aggregator.grand_total(rows)
    click.echo(f"\n{len(rows)} expense(s), total {format_amount(total, cfg['currency_symbol'])}")


@main.command()
@click.option('--amount', required=True, help='Amount spent')
@click.option('--category', required=True, help='Expense category')
@click.option('--description', required=True, help='What the money was spent on')
@click.option('--date', 'spent_on', default=None, help='YYYY-MM-DD (default: today)')
@click.pass_context
def add(ctx, amount, category, description, spent_on):
    """Record a new expense."""
    cfg = ctx.obj['config']
    draft = _draft(cfg, ExpenseForm(amount, category, description, spent_on or ''))
    try:
        created = _store(ctx).add(draft)
    except (BackendError, StoreBusyError) as e:
        raise click.ClickException(str(e))
    click.echo(f"Expense added successfully! (id {created.id})")


@main.command()
@click.argument('expense_id')
@click.option('--amount', default=None, help='New amount')
@click.option('--category', default=None, help='New category')
@click.option('--description', default=None, help='New description')
@click.option('--date', 'spent_on', default=None, help='New date, YYYY-MM-DD')
@click.pass_context
def edit(ctx, expense_id, amount, category, description, spent_on):
    """Replace the fields of an existing expense; omitted fields are kept."""
    cfg = ctx.obj['config']
    store = _store(ctx)
    current = store.get(expense_id)
    if current is None:
        raise click.ClickException(f"Expense {expense_id} not found")
    form = ExpenseForm.from_expense(current)
    form.amount = amount if amount is not None else form.amount
    form.category = category if category is not None else form.category
    form.description = description if description is not None else form.description
    form.date = spent_on if spent_on is not None else form.date
    draft = _draft(cfg, form)
    try:
        store.update(expense_id, draft)
    except (BackendError, StoreBusyError) as e:
        raise click.ClickException(str(e))
    click.echo("Expense updated successfully!")


@main.command()
@click.argument('expense_id')
@click.pass_context
def delete(ctx, expense_id):
    """Delete an expense by identifier."""
    try:
        _store(ctx).delete(expense_id)
    except (BackendError, StoreBusyError) as e:
        raise click.ClickException(str(e))
    click.echo("Expense deleted successfully!")


@main.command()
@click.option('--category', default='all', help="Category the total is filtered to")
@click.pass_context
def summary(ctx, category):
    """Print totals, the category breakdown and monthly/daily trends."""
    cfg = ctx.obj['config']
    symbol = cfg['currency_symbol']
    data = aggregator.summarize(
        _store(ctx).expenses,
        category=category,
        today=date.today(),
        match_year=cfg.get('current_month_matches_year', False),
    )
    click.echo(f"Total Expenses: {format_amount(data['total'], symbol)}")
    click.echo(f"Total Entries:  {data['count']}")
    click.echo(f"This Month:     {format_amount(data['current_month_total'], symbol)}")

    if data['categories']:
        click.echo("\nCategory Breakdown")
        for row in data['categories']:
            click.echo(
                f"  {row['category']:<18} {format_amount(row['amount'], symbol):>12}"
                f"  {row['percentage']:5.1f}% of total"
            )
    if data['monthly']:
        click.echo("\nMonthly Expenses")
        for row in data['monthly']:
            click.echo(f"  {row['month']:<10} {format_amount(row['amount'], symbol):>12}  ({row['count']} entries)")
    if data['daily']:
        click.echo("\nDaily Expense Trend (Last 30 Days)")
        for row in data['daily']:
            click.echo(f"  {row['display_date']:<8} {format_amount(row['amount'], symbol):>12}")


@main.command('import')
@click.argument('file_path', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--format', 'file_format',
    default=None,
    type=click.Choice(['csv', 'excel']),
    help='File format (default: guessed from the extension)'
)
@click.pass_context
def import_expenses(ctx, file_path, file_format):
    """Add every row of a CSV or Excel file as a new expense."""
    cfg = ctx.obj['config']
    if file_format is None:
        file_format = 'excel' if file_path.lower().endswith(('.xlsx', '.xlsm')) else 'csv'
    loader = get_loader(file_format, cfg)
    # Read the whole file first so a bad row stores nothing
    try:
        drafts = list(loader.load(file_path))
    except (RuntimeError, ValueError) as e:
        raise click.ClickException(str(e))
    store = _store(ctx)
    added = 0
    try:
        for draft in drafts:
            store.add(draft)
            added += 1
    except (BackendError, StoreBusyError) as e:
        raise click.ClickException(f"Imported {added} expense(s) before failing: {e}")
    click.echo(f"Imported {added} expense(s) from {file_path}.")


@main.command()
@click.option(
    '--output', 'output_format',
    default='csv',
    type=click.Choice(['csv', 'excel']),
    help='Output target: csv or excel'
)
@click.pass_context
def export(ctx, output_format):
    """Write every expense (and, for Excel, summary sheets and charts) to output_dir."""
    cfg = ctx.obj['config']
    outputter = get_output(output_format, cfg)
    path = outputter.write(_store(ctx).expenses, today=date.today())
    click.echo(f"Written {len(_store(ctx).expenses)} expense(s) to {path}")
