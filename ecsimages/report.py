import json

from .exceptions import ECSImagesError


def _sorted_images(images):
    return sorted(images, key=lambda image: (image.service_name, image.image_name))


def render_text(images_by_cluster):
    lines = []
    for cluster in sorted(images_by_cluster):
        lines.append(cluster)
        images = _sorted_images(images_by_cluster[cluster])
        if not images:
            lines.append("  (no services)")
        for image in images:
            lines.append(
                f"  {image.service_name}  {image.image_name}  {image.task_definition_name}"
            )
    return "\n".join(lines)


def render_json(images_by_cluster):
    return json.dumps(
        {
            cluster: [image.as_dict() for image in _sorted_images(images)]
            for cluster, images in images_by_cluster.items()
        },
        sort_keys=True,
        indent=2,
    )


RENDERERS = {"text": render_text, "json": render_json}


def render(images_by_cluster, fmt="text"):
    try:
        renderer = RENDERERS[fmt]
    except KeyError:
        raise ECSImagesError(f"Unknown output format: {fmt}")
    return renderer(images_by_cluster)
