import json
from pathlib import Path
from typing import Optional

import typer

from image_folder_pipeline.dataset_builder import (
    DatasetValidator,
    ImageDiscovery,
    format_report,
)
from image_folder_pipeline.lib import (
    ConfigurationError,
    configure_logging,
    load_config_file,
    setup_logger,
)

from .config import Architecture, merge_overrides, parse_training_config
from .orchestrator import TrainingOrchestrator
from .trainer import TorchTrainer

app = typer.Typer(help="Image Classifier Training Component")

logger = setup_logger(__name__)

DEFAULT_MODEL_PATH = "./models/model.pt"


@app.command()
def train(
    dataset_dir: Optional[str] = typer.Argument(
        None, help="Path to the dataset root (one subdirectory per class)"
    ),
    model_path: Optional[str] = typer.Argument(
        None, help=f"Where to save the trained model [default: {DEFAULT_MODEL_PATH}]"
    ),
    config_file: Optional[str] = typer.Option(
        None, help="Path to the training configuration file (YAML/JSON)"
    ),
    epochs: Optional[int] = typer.Option(None, help="Maximum number of epochs"),
    batch_size: Optional[int] = typer.Option(None, help="Batch size"),
    learning_rate: Optional[float] = typer.Option(None, help="Learning rate"),
    architecture: Optional[Architecture] = typer.Option(None, help="Classifier head"),
    width: Optional[int] = typer.Option(None, help="Image width in pixels"),
    height: Optional[int] = typer.Option(None, help="Image height in pixels"),
    test_fraction: Optional[float] = typer.Option(None, help="Ratio of test data"),
    validation_fraction: Optional[float] = typer.Option(
        None, help="Ratio of validation data"
    ),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducibility"),
    transfer_learning: Optional[bool] = typer.Option(
        None, "--transfer-learning/--no-transfer-learning", help="Use DINOv2 features"
    ),
    use_gpu: Optional[bool] = typer.Option(None, "--gpu/--cpu", help="Train on CUDA"),
    device_id: Optional[int] = typer.Option(None, help="CUDA device index"),
    fallback_to_cpu: Optional[bool] = typer.Option(
        None, "--fallback-to-cpu/--no-fallback-to-cpu", help="Retry on CPU if GPU fails"
    ),
    timeout: Optional[float] = typer.Option(None, help="Training time budget in seconds"),
    plot: Optional[str] = typer.Option(None, help="Save a confusion matrix PNG here"),
    metrics_file: Optional[str] = typer.Option(None, help="Save test metrics as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs"),
    log_file: Optional[str] = typer.Option(None, help="Also write logs to this file"),
):
    """
    Validate a dataset, train an image classifier on it and save the model.
    """
    configure_logging(verbose, log_file)
    try:
        config_data = load_config_file(config_file) if config_file else {}
        config_data = merge_overrides(
            config_data,
            {
                "image": {"width": width, "height": height},
                "split": {"test": test_fraction, "validation": validation_fraction},
                "seed": seed,
                "hyperparameters": {
                    "num_epochs": epochs,
                    "batch_size": batch_size,
                    "learning_rate": learning_rate,
                },
                "architecture": architecture.value if architecture else None,
                "use_transfer_learning": transfer_learning,
                "device": {
                    "use_gpu": use_gpu,
                    "device_id": device_id,
                    "fallback_to_cpu": fallback_to_cpu,
                },
                "timeout_seconds": timeout,
                "paths": {"dataset_path": dataset_dir, "model_path": model_path},
            },
        )
        config = parse_training_config(config_data)
    except ConfigurationError as e:
        logger.critical(e)
        raise typer.Exit(code=1)

    dataset_path = config.paths.dataset_path
    if not dataset_path:
        logger.critical("A dataset directory is required (argument or paths.dataset_path)")
        raise typer.Exit(code=1)
    output_path = Path(config.paths.model_path or DEFAULT_MODEL_PATH).absolute()
    dataset_path = str(Path(dataset_path).absolute())

    logger.info(f"Dataset Path: {dataset_path}")
    logger.info(f"Model Output Path: {output_path}")

    report = DatasetValidator().validate(dataset_path)
    for line in format_report(report):
        typer.echo(line)
    if not report.is_valid:
        raise typer.Exit(code=1)

    try:
        images = ImageDiscovery().discover(dataset_path)
        orchestrator = TrainingOrchestrator(TorchTrainer())

        typer.echo("Training model...")
        model, metrics = orchestrator.train(images, config)
        orchestrator.save(model, output_path)
    except Exception as e:
        logger.critical(e, exc_info=True)
        raise typer.Exit(code=1)

    logger.info("Training completed successfully.")
    logger.info(f"Training Time: {metrics.training_time_seconds:.2f} seconds")
    logger.info(f"Training Samples: {metrics.training_sample_count}")
    logger.info("Model Performance Metrics:")
    logger.info(f"  Micro Accuracy: {metrics.micro_accuracy:.2%}")
    logger.info(f"  Macro Accuracy: {metrics.macro_accuracy:.2%}")
    logger.info(f"  Log Loss: {metrics.log_loss:.4f}")

    if metrics_file:
        Path(metrics_file).parent.mkdir(parents=True, exist_ok=True)
        with open(metrics_file, "w") as f:
            json.dump(metrics.model_dump(), f, indent=4)
        logger.info(f"Metrics saved to {metrics_file}")

    if plot:
        from .report import save_confusion_matrix_plot

        save_confusion_matrix_plot(metrics, plot)

    typer.echo(f"Model saved to {output_path}")


if __name__ == "__main__":
    app()
