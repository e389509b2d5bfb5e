"""Pure encoders for PNG, BMP, TGA, HDR and JPEG images, with a small zlib encoder."""