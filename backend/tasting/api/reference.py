from flask import Blueprint, jsonify

from tasting.services.reference import distilleries_for_region, list_regions

reference = Blueprint('reference', __name__)


@reference.route('/regions', methods=['GET'])
def regions():
    return jsonify([r.model_dump() for r in list_regions()])


@reference.route('/regions/<string:region_id>/distilleries', methods=['GET'])
def distilleries(region_id):
    return jsonify([d.model_dump() for d in distilleries_for_region(region_id)])
