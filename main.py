"""
Demo: ask every configured provider the same question, then embed a few
sentences with the providers that support embeddings.
"""
import asyncio

from llmrelay import (
    CallKind,
    RichPrinter,
    configure_logging,
    create_message,
    get_chat_function,
    get_embedding_function,
    load_config,
)


async def main():
    configure_logging()
    printer = RichPrinter(show_metadata=True)

    messages = [
        create_message("system", "You are a concise assistant."),
        create_message("user", "What is the capital of France? Answer in markdown."),
    ]

    for provider in ("openai", "anthropic", "gemini"):
        try:
            config = load_config(provider)
        except ValueError as e:
            print(f"{provider}: skipped - {e}")
            continue

        chat = get_chat_function(config)
        printer.title = f"{config.provider.label} / {config.default_model}"
        printer.print_message(await chat(messages))

    sentences = ["The cat sat on the mat.", "Paris is the capital of France."]
    for provider in ("openai", "gemini"):
        try:
            config = load_config(provider, CallKind.EMBEDDING)
        except ValueError as e:
            print(f"{provider}: skipped - {e}")
            continue

        embed = get_embedding_function(config)
        printer.print_embeddings(await embed(sentences))


if __name__ == "__main__":
    asyncio.run(main())
