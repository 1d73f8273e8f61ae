class ECSImagesError(Exception):
    pass
