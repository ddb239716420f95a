from pathlib import Path
from typing import Optional

import pandas as pd
import typer

from image_folder_pipeline.classifier_trainer.trainer import TorchTrainer
from image_folder_pipeline.dataset_builder.discovery import find_image_files
from image_folder_pipeline.lib import (
    PipelineError,
    configure_logging,
    load_config_file,
    setup_logger,
)

from .aggregator import PredictionAggregator

app = typer.Typer(help="Image Classifier Prediction Component")

logger = setup_logger(__name__)

DEFAULT_IMAGES_DIR = "./data/identification"


@app.command()
def predict(
    model_path: str = typer.Argument(..., help="Path to a trained model file"),
    image_path: Optional[str] = typer.Argument(
        None, help="Image to classify. Omit to classify every image in --images-dir"
    ),
    images_dir: Optional[str] = typer.Option(
        None, help=f"Directory for batch prediction [default: {DEFAULT_IMAGES_DIR}]"
    ),
    config_file: Optional[str] = typer.Option(
        None, help="Configuration file providing paths.test_images_path"
    ),
    output_csv: Optional[str] = typer.Option(None, help="Save batch predictions as CSV"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs"),
):
    """
    Classify a single image, or every image in a directory.
    """
    configure_logging(verbose)
    try:
        model, _ = TorchTrainer().load(Path(model_path).absolute())
        aggregator = PredictionAggregator(model)

        if image_path:
            record = aggregator.predict_one(Path(image_path).absolute())
            typer.echo(
                f"Result: {record.predicted_label} (confidence: {record.confidence:.1f}%)"
            )
            if len(record.score_per_class) > 1:
                for name, score in aggregator.top_scores(record, k=3):
                    typer.echo(f"  {name}: {score:.1%}")
            return

        if images_dir is None and config_file:
            images_dir = (load_config_file(config_file).get("paths") or {}).get(
                "test_images_path"
            )
        batch_dir = Path(images_dir or DEFAULT_IMAGES_DIR).absolute()
        if not batch_dir.is_dir():
            logger.warning(f"Identification images directory not found: {batch_dir}")
            return

        image_files = find_image_files(batch_dir)
        if not image_files:
            logger.warning("No supported image files found in the images directory")
            return

        records = aggregator.predict_batch(image_files)
        for record in records:
            typer.echo(
                f"{Path(record.image_path).name} -> {record.predicted_label} ({record.confidence:.1f}%)"
            )

        summary = aggregator.summarize(records)
        typer.echo(f"Total processed: {summary.count}")
        typer.echo(f"Average confidence: {summary.average_confidence:.2f}%")
        for label, count in summary.ranked():
            typer.echo(f"{label}: {count} images")

        if output_csv:
            frame = pd.DataFrame(
                [
                    {
                        "image_path": r.image_path,
                        "predicted_label": r.predicted_label,
                        "confidence": r.confidence,
                    }
                    for r in records
                ]
            )
            Path(output_csv).parent.mkdir(parents=True, exist_ok=True)
            frame.to_csv(output_csv, index=False)
            logger.info(f"Predictions saved to {output_csv}")

    except PipelineError as e:
        logger.critical(e)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
