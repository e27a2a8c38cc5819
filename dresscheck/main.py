"""
Main entry point for DressCheck.

Run without arguments for the interactive prompt, or pass a command
directly, e.g. ``dresscheck extract https://www.zara.com/es/es/vestido-p123.html``.
"""

import sys
from dotenv import load_dotenv

load_dotenv()

from dresscheck.config import Settings
from dresscheck.context import PipelineContext, ProviderClientFactory
from dresscheck.errors import DressCheckError, ExtractionFailed
from dresscheck.extraction import extract_product
from dresscheck.logging_setup import configure_logging
from dresscheck.models import PoolItem, ProductRecord, Suggestion
from dresscheck.suggestions import suggest_alternatives
from dresscheck.vision import analyze_image


def print_record(record: ProductRecord):
    """Print a product record in a readable form."""
    print(f"Name: {record.name}")
    print(f"Image: {record.image_url}")
    if record.brand:
        print(f"Brand: {record.brand}")
    if record.color:
        print(f"Color: {record.color}")
    if record.price:
        print(f"Price: {record.price.amount:.2f} {record.price.currency}")
    if record.type:
        print(f"Type: {record.type.display_name} ({record.type.category}/{record.type.subcategory})")
    if record.description:
        print(f"Description: {record.description[:200]}")


def print_suggestion(suggestion: Suggestion):
    reply = suggestion.suggestion
    print(f"* {reply.title or reply.item.name}")
    if reply.reasoning:
        print(f"  {reply.reasoning}")
    for product in suggestion.products:
        price = f" - {product.price.amount:.2f} {product.price.currency}" if product.price else ""
        print(f"  > {product.name}{price}: {product.source_url}")
    for link in suggestion.search_links[:3]:
        print(f"  Search {link.retailer}: {link.url}")


def print_status(context: PipelineContext):
    status = context.ai.check_status()
    print(f"AI provider: {status['status']}")
    if status.get("error"):
        print(f"  Error: {status['error']}")
    if context.renderer is None:
        print("Render proxy: not configured")
    else:
        stats = context.renderer.get_usage_stats()
        print(f"Render proxy: {stats['total_calls']} calls, ~${stats['estimated_cost_usd']:.4f}")
    print(f"AI calls this session: {context.ai.calls}")


def run_command(context: PipelineContext, command: str, argument: str) -> bool:
    """Run one command. Returns False when the user asked to quit."""
    if command in ("quit", "exit", "q"):
        print("Goodbye!")
        return False

    if command == "extract":
        if not argument:
            print("Please provide a URL to extract from.")
            return True
        print(f"\nExtracting product from: {argument}")
        print("This may take a moment...\n")
        try:
            print_record(extract_product(argument, context))
        except ExtractionFailed as e:
            print("Could not extract this product. Please enter the details manually.")
            for attempt in e.attempts:
                print(f"  - {attempt.strategy_name}: {attempt.error}")
        print()

    elif command == "image":
        if not argument:
            print("Please provide an image URL.")
            return True
        print(f"\nAnalyzing image: {argument[:80]}\n")
        print_record(analyze_image(argument, context))
        print()

    elif command == "suggest":
        if not argument:
            print("Please provide the URL of the duplicated item.")
            return True
        item = PoolItem.from_record("cli", extract_product(argument, context))
        print(f"\nLooking for alternatives to: {item.name}\n")
        suggestions = suggest_alternatives(item, [], None, context)
        if not suggestions:
            print("No suggestions available right now.")
        for suggestion in suggestions:
            print_suggestion(suggestion)
        print()

    elif command == "status":
        print_status(context)

    else:
        print(f"Unknown command: {command}")

    return True


def interactive(context: PipelineContext):
    print("DressCheck - Fashion product extraction")
    print("=" * 40)
    print("\nCommands:")
    print("  extract <url>  - Extract a product from a retailer URL")
    print("  image <url>    - Describe a garment photo")
    print("  suggest <url>  - Suggest alternatives to a duplicated item")
    print("  status         - Show provider status and usage")
    print("  quit           - Exit the application")
    print()

    while True:
        try:
            user_input = input("DressCheck> ").strip()

            if not user_input:
                continue

            command, _, argument = user_input.partition(" ")
            if not run_command(context, command.lower(), argument.strip()):
                break

        except KeyboardInterrupt:
            print("\nGoodbye!")
            break
        except DressCheckError as e:
            print(f"Error: {e}")


def main():
    """Run DressCheck in interactive or one-shot mode."""
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    context = ProviderClientFactory(settings).create_context()

    try:
        if len(sys.argv) > 1:
            command = sys.argv[1].lower()
            argument = " ".join(sys.argv[2:]).strip()
            try:
                run_command(context, command, argument)
            except DressCheckError as e:
                print(f"Error: {e}")
                sys.exit(1)
        else:
            interactive(context)
    finally:
        context.close()


if __name__ == "__main__":
    main()
