import argparse
import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from paper_insight.config import get_settings
from paper_insight.db import DocumentStore, create_session_factory, init_models
from paper_insight.embeddings.providers import create_embedding_provider
from paper_insight.ingestion.extractor import PdfTextExtractor
from paper_insight.ingestion.pipeline import IngestionPipeline


async def main(args: argparse.Namespace) -> None:
    settings = get_settings()
    engine, session_factory = create_session_factory(settings)
    await init_models(engine)

    provider = create_embedding_provider(settings)
    print(f"Using {provider.name} embeddings ({provider.dimensions()} dimensions).")

    try:
        async with session_factory() as session:
            store = DocumentStore(session)

            project_id = args.project
            if project_id is None:
                project = await store.create_project(args.project_name)
                await store.commit()
                project_id = project.id
                print(f"Created project {project.name} ({project_id}).")

            pipeline = IngestionPipeline(settings, PdfTextExtractor(), provider, store)

            for i, path in enumerate(args.files):
                print(f"Ingesting ({i+1}/{len(args.files)}): {path}")
                document = await pipeline.ingest(path, project_id)
                print(
                    f"  -> {document.id} '{document.title}' "
                    f"({len(document.sections)} sections)"
                )
    finally:
        await engine.dispose()

    print("Done!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Ingest PDF papers into a project.")
    parser.add_argument("files", nargs="+", help="PDF files to ingest")
    parser.add_argument("--project", help="Existing project id")
    parser.add_argument(
        "--project-name",
        default="default",
        help="Name of the project to create when --project is not given",
    )
    asyncio.run(main(parser.parse_args()))
